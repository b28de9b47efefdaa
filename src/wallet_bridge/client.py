"""
WalletBridge — the object a chat bot holds for the lifetime of its process.

Construct it at start-up, ``await start()``, register an event handler for
``walletConnected``, and ``await shutdown()`` on exit. All session state is
in memory and dies with the process.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Union

from wallet_bridge.config import BridgeSettings
from wallet_bridge.errors import ChainMismatch, ConnectionTimeout, SessionExpired, SessionNotFound
from wallet_bridge.models.session import (
    SESSION_TIMEOUT,
    BridgeStats,
    ConnectionStatus,
    PairingResult,
    Session,
    UserId,
)
from wallet_bridge.models.transaction import PendingTransaction, SendResult, TransactionPayload
from wallet_bridge.negotiator import ConnectionNegotiator
from wallet_bridge.platform import PlatformInfo, detect_platform
from wallet_bridge.registry import SessionRegistry
from wallet_bridge.relay import TransactionRelay
from wallet_bridge.transport.base import SignClient
from wallet_bridge.uri import build_deep_links

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Any], Any]


class WalletBridge:
    """Async wallet connection manager (session registry + negotiator + relay)."""

    def __init__(
        self,
        settings: Optional[BridgeSettings] = None,
        sign_client: Optional[SignClient] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.settings = settings or BridgeSettings()
        registry_kwargs: dict[str, Any] = {
            "idle_window_s": self.settings.idle_window_s,
            "sweep_interval_s": self.settings.sweep_interval_s,
        }
        if clock is not None:
            registry_kwargs["clock"] = clock
        self.registry = SessionRegistry(**registry_kwargs)
        self.negotiator = ConnectionNegotiator(self.registry, self.settings, sign_client, emit=self._dispatch)
        self.relay = TransactionRelay(self.registry, self.settings)

        self._event_handlers: list[EventHandler] = []
        self._handler_tasks: set[asyncio.Task] = set()
        self._started = False

    @classmethod
    def from_settings(cls, settings: Optional[BridgeSettings] = None) -> "WalletBridge":
        """Build a bridge that talks to the signing relay when one is configured."""
        settings = settings or BridgeSettings()
        sign_client: Optional[SignClient] = None
        if settings.wallet_relay_url and settings.protocol_enabled:
            from wallet_bridge.transport.socketio import SocketIOSignClient
            sign_client = SocketIOSignClient(
                settings.wallet_relay_url,
                settings.walletconnect_project_id,
                metadata=settings.app_metadata(),
                ready_timeout=settings.relay_ready_timeout_s,
            )
        return cls(settings=settings, sign_client=sign_client)

    # --- events ---

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)

        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def on_event(self, handler: Optional[EventHandler]) -> None:
        """Set a single event handler (replaces all)."""
        self._event_handlers.clear()
        if handler is not None:
            self._event_handlers.append(handler)

    def _dispatch(self, event: str, data: Any) -> None:
        for handler in list(self._event_handlers):
            try:
                result = handler(event, data)
            except Exception:
                logger.exception("Event handler failed for %s", event)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._handler_tasks.add(task)
                task.add_done_callback(self._handler_done)

    def _handler_done(self, task: "asyncio.Future[Any]") -> None:
        self._handler_tasks.discard(task)  # type: ignore[arg-type]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Async event handler failed: %s", task.exception())

    # --- lifecycle ---

    @property
    def protocol_available(self) -> bool:
        return self.negotiator.protocol_available

    async def start(self) -> None:
        if self._started:
            return
        client = self.negotiator.sign_client
        if client is not None:
            try:
                await client.initialize()
                logger.info("Signing protocol client initialized")
            except Exception as e:
                logger.warning("Signing protocol client failed to initialize: %s", e)
                logger.info("Falling back to manual URI generation")
                self.negotiator.sign_client = None
        self.registry.start()
        self._started = True

    async def shutdown(self) -> None:
        await self.registry.shutdown()
        for task in list(self._handler_tasks):
            task.cancel()
        client = self.negotiator.sign_client
        if client is not None:
            try:
                await client.close()
            except Exception as e:
                logger.warning("Error closing signing protocol client: %s", e)
        self._started = False

    # --- sessions ---

    async def create_session(self, user_id: UserId) -> PairingResult:
        return await self.negotiator.create_session(user_id)

    async def check_connection(self, user_id: UserId) -> ConnectionStatus:
        status = await self.registry.check_connection(user_id)
        if status.connected and status.chain_id is not None and status.chain_id != self.settings.chain_id:
            status.warning = str(ChainMismatch(status.chain_id, self.settings.chain_id))
        return status

    async def wait_for_connection(
        self,
        user_id: UserId,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> ConnectionStatus:
        """Poll until the user's wallet is connected.

        Observing ``connected`` here goes through the same guarded notification
        as the approval path, so whichever sees it first notifies. Raises
        ConnectionTimeout once the approval window has passed.
        """
        timeout = self.settings.connection_timeout_s if timeout is None else timeout
        interval = self.settings.poll_interval_s if poll_interval is None else poll_interval
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            status = await self.check_connection(user_id)
            if status.connected:
                session = self.registry.get(user_id)
                if session is not None:
                    self.negotiator.mark_connected(session)
                return status
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise ConnectionTimeout(
                    "Connection request expired. Please try again with /connect",
                    {"user_id": user_id, "reason": status.reason},
                )
            await asyncio.sleep(min(interval, remaining))

    def get_session(self, user_id: UserId) -> Session:
        session = self.registry.get(user_id)
        if session is None:
            raise SessionNotFound(details={"user_id": user_id})
        if self.registry.is_expired(session):
            raise SessionExpired(SESSION_TIMEOUT, {"user_id": user_id, "session_id": session.id})
        return session

    def ensure_chain(self, user_id: UserId) -> int:
        """Return the connected chain id, raising ChainMismatch if it is not the required one."""
        session = self.get_session(user_id)
        if session.chain_id != self.settings.chain_id:
            raise ChainMismatch(session.chain_id, self.settings.chain_id)
        return self.settings.chain_id

    async def disconnect(self, user_id: UserId) -> bool:
        async with self.registry.user_lock(user_id):
            session = self.registry.get(user_id)
            if session is not None:
                await self.registry.teardown(session)
                logger.info("Disconnected wallet session %s for user %s", session.id, user_id)
        return True

    def deep_links(self, user_id: UserId) -> Optional[dict[str, str]]:
        session = self.registry.get(user_id)
        return build_deep_links(session.uri) if session is not None else None

    @staticmethod
    def detect_platform(chat_type: Optional[str]) -> PlatformInfo:
        return detect_platform(chat_type)

    # --- transactions ---

    async def send_transaction(
        self,
        user_id: UserId,
        payload: Union[TransactionPayload, dict[str, Any]],
        description: str = "Transaction",
    ) -> SendResult:
        return await self.relay.send(user_id, payload, description)

    async def refresh_chain_id(self, user_id: UserId) -> Optional[int]:
        return await self.relay.refresh_chain_id(user_id)

    def get_pending_transaction(self, user_id: UserId) -> Optional[PendingTransaction]:
        session = self.registry.get(user_id)
        return self.registry.pending_for(session.id) if session is not None else None

    def clear_pending_transaction(self, user_id: UserId) -> None:
        session = self.registry.get(user_id)
        if session is not None:
            self.registry.clear_pending(session.id)

    def get_stats(self) -> BridgeStats:
        return self.registry.stats()
