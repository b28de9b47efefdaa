"""
Signing-protocol client interface.

The bridge never implements the pairing cryptography itself; it drives a client
with this shape. ``connect`` returns the pairing URI and an awaitable that
resolves with the approval payload (see ``ApprovedSession``) or raises when
the wallet declines.
"""

from typing import Any, Awaitable, Optional, Protocol, Tuple


class SignClient(Protocol):
    async def initialize(self) -> None:
        ...

    async def connect(self, required_namespaces: dict[str, Any]) -> Tuple[str, Awaitable[dict[str, Any]]]:
        ...

    async def request(self, topic: str, request: dict[str, Any], chain_id: Optional[str] = None) -> Any:
        ...

    async def disconnect(self, topic: str, reason: dict[str, Any]) -> None:
        ...

    async def close(self) -> None:
        ...
