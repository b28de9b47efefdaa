"""
Envelope construction and parsing for the signing relay.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from wallet_bridge.models.envelope import ClientSource, EnvelopeMetadata, RelayEnvelope, RelayPayload


def build_envelope(
    event_type: str,
    data: Any,
    project_id: str,
    client_id: str,
    request_id: Optional[str] = None,
    pairing_id: Optional[str] = None,
    topic: Optional[str] = None,
    chain_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build an outgoing envelope as a dict ready for Socket.IO emit."""
    envelope = RelayEnvelope(
        metadata=EnvelopeMetadata(
            event_id=str(uuid.uuid4()),
            request_id=request_id or str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=ClientSource(role="dapp", project_id=project_id, client_id=client_id),
        ),
        type=event_type,
        payload=RelayPayload(
            pairing_id=pairing_id,
            topic=topic,
            chain_id=chain_id,
            data=data,
        ),
    )
    return envelope.model_dump()


def parse_envelope(raw: Any) -> Optional[RelayEnvelope]:
    """Parse an incoming envelope. Returns None if invalid."""
    try:
        return RelayEnvelope.model_validate(raw)
    except Exception:
        return None
