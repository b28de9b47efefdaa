"""
Message envelope exchanged with the signing relay sidecar.
"""

from typing import Any, Optional
from pydantic import BaseModel


class ClientSource(BaseModel):
    role: str  # "dapp" | "relay"
    project_id: Optional[str] = None
    client_id: Optional[str] = None


class EnvelopeMetadata(BaseModel):
    event_id: str
    request_id: Optional[str] = None
    timestamp: str
    source: ClientSource


class RelayPayload(BaseModel):
    pairing_id: Optional[str] = None
    topic: Optional[str] = None
    chain_id: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[dict[str, Any]] = None


class RelayEnvelope(BaseModel):
    metadata: EnvelopeMetadata
    type: str
    payload: RelayPayload
