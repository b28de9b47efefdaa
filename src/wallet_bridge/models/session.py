"""
Session records and the shapes handed back to the chat layer.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

UserId = Union[int, str]

NO_SESSION = "No session found"
SESSION_EXPIRED = "Session expired"
SESSION_TIMEOUT = "Session timeout"


class Session:
    """One user's pairing lifecycle. Mutated only by the registry, negotiator and relay."""

    __slots__ = ("id", "user_id", "handle", "uri", "connected", "address", "chain_id",
                 "created_at", "last_activity", "notification_sent", "is_manual")

    def __init__(self, id: str, user_id: UserId, created_at: float):
        self.id = id
        self.user_id = user_id
        self.handle: Any = None
        self.uri: Optional[str] = None
        self.connected = False
        self.address: Optional[str] = None
        self.chain_id: Optional[int] = None
        self.created_at = created_at
        self.last_activity = created_at
        self.notification_sent = False
        self.is_manual = False

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, user_id={self.user_id!r}, connected={self.connected!r})"


class ConnectionStatus(BaseModel):
    connected: bool
    address: Optional[str] = None
    chain_id: Optional[int] = None
    session_id: Optional[str] = None
    reason: Optional[str] = None
    warning: Optional[str] = None

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class WalletConnected(BaseModel):
    """Payload of the walletConnected event."""
    user_id: UserId
    address: str
    chain_id: Optional[int] = None
    session_id: str
    chain_mismatch: bool = False

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class PairingFailed(BaseModel):
    user_id: UserId
    session_id: str
    code: str
    message: str

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class PairingResult:
    __slots__ = ("session_id", "uri", "handle")

    def __init__(self, session_id: str, uri: str, handle: Any):
        self.session_id = session_id
        self.uri = uri
        self.handle = handle

    def __repr__(self) -> str:
        return f"PairingResult(session_id={self.session_id!r})"


class BridgeStats(BaseModel):
    total_sessions: int = 0
    connected_sessions: int = 0
    pending_transactions: int = 0
    active_sessions: int = 0

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class NamespaceGrant(BaseModel):
    accounts: list[str] = []
    chains: list[str] = []
    methods: list[str] = []
    events: list[str] = []


class ApprovedSession(BaseModel):
    """Approval payload of a protocol pairing: topic plus granted namespaces."""
    topic: str
    namespaces: dict[str, NamespaceGrant] = {}

    def grant(self, namespace: str = "eip155") -> NamespaceGrant:
        return self.namespaces.get(namespace) or NamespaceGrant()

    def chain_id(self, namespace: str = "eip155") -> Optional[int]:
        grant = self.grant(namespace)
        # "eip155:97" in chains, or "eip155:97:0xabc" in accounts
        for ref in grant.chains + grant.accounts:
            parts = ref.split(":")
            if len(parts) >= 2:
                try:
                    return int(parts[1])
                except ValueError:
                    continue
        return None

    def first_address(self, namespace: str = "eip155") -> Optional[str]:
        for account in self.grant(namespace).accounts:
            parts = account.split(":")
            if len(parts) == 3 and parts[2]:
                return parts[2]
        return None
