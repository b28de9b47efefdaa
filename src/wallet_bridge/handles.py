"""
Connection handles: the capability a session uses to reach the user's wallet.

ProtocolBackedHandle  — pairing opened through a SignClient; requests are
                        addressed to the topic bound at approval.
ManualFallbackHandle  — URI only. Cannot send anything; the user signs in
                        their wallet app directly.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from wallet_bridge.errors import ProtocolConfigError
from wallet_bridge.models.events import USER_DISCONNECTED
from wallet_bridge.transport.base import SignClient

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


class ConnectionHandle:
    is_manual = False

    def __init__(self, uri: str, chain_id: Optional[int] = None):
        self.uri = uri
        self.connected = False
        self.accounts: list[str] = []
        self.chain_id = chain_id
        self._listeners: list[Listener] = []

    @property
    def can_send(self) -> bool:
        return False

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Add a listener for handle events. Returns a cleanup function."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def emit(self, event: str, data: Any = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, data)
            except Exception:
                logger.exception("Handle listener failed for %s", event)

    async def send_request(self, method: str, params: list[Any], chain_id: Optional[str] = None) -> Any:
        raise NotImplementedError

    async def close(self) -> None:
        self.connected = False


class ProtocolBackedHandle(ConnectionHandle):
    def __init__(self, uri: str, client: SignClient, chain_id: Optional[int] = None):
        super().__init__(uri, chain_id)
        self.client = client
        self.topic: Optional[str] = None
        self.approval_task: Optional[asyncio.Task] = None

    @property
    def can_send(self) -> bool:
        return self.connected and self.topic is not None

    def bind(self, topic: str, accounts: list[str], chain_id: Optional[int]) -> None:
        self.topic = topic
        self.accounts = list(accounts)
        self.chain_id = chain_id
        self.connected = True

    async def send_request(self, method: str, params: list[Any], chain_id: Optional[str] = None) -> Any:
        if not self.topic:
            raise ProtocolConfigError("WalletConnect session not properly established. Please reconnect your wallet.")
        return await self.client.request(self.topic, {"method": method, "params": params}, chain_id=chain_id)

    async def close(self) -> None:
        task = self.approval_task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        topic, self.topic = self.topic, None
        self.connected = False
        if topic:
            await self.client.disconnect(topic, USER_DISCONNECTED)


class ManualFallbackHandle(ConnectionHandle):
    is_manual = True

    def __init__(self, uri: str, peer_id: str, chain_id: Optional[int] = None):
        super().__init__(uri, chain_id)
        self.peer_id = peer_id

    async def send_request(self, method: str, params: list[Any], chain_id: Optional[str] = None) -> Any:
        raise ProtocolConfigError("Please use your wallet app to sign transactions", {"method": method})


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None

