"""
Socket.IO client for the signing relay sidecar.

The sidecar runs the signing-protocol SDK and holds the pairing keys; this
client only asks it to open pairings, forward JSON-RPC requests to a paired
wallet and drop pairings. Replies are correlated by ``request_id``, approvals
by the ``pairing_id`` chosen here before the pairing is requested.
"""

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Optional, Tuple

import socketio

from wallet_bridge.errors import ProtocolConfigError, WalletBridgeError
from wallet_bridge.models.events import RelayEvent
from wallet_bridge.transport.envelope import build_envelope, parse_envelope

logger = logging.getLogger(__name__)

RELAY_PATH = "/relay/socket.io/"
REPLY_EVENTS = {RelayEvent.PAIRING_CREATE, RelayEvent.SESSION_RESPONSE}
APPROVAL_EVENTS = {RelayEvent.PAIRING_APPROVED, RelayEvent.PAIRING_REJECTED}


class SocketIOSignClient:
    def __init__(
        self,
        relay_url: str,
        project_id: str,
        metadata: Optional[dict[str, Any]] = None,
        client_id: Optional[str] = None,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
        reply_timeout: float = 15.0,
    ):
        self._relay_url = relay_url
        self._project_id = project_id
        self._metadata = metadata or {}
        self._client_id = client_id or str(uuid.uuid4())
        self._transports = transports or ["websocket"]
        self._ready_timeout = ready_timeout
        self._reply_timeout = reply_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._ready = False
        self._replies: dict[str, asyncio.Future] = {}
        self._approvals: dict[str, asyncio.Future] = {}

    @property
    def connected(self) -> bool:
        return self._ready and self._sio is not None and self._sio.connected

    async def initialize(self) -> None:
        """Connect to the relay and wait for its `ready` event."""
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient()
        ready_event = asyncio.Event()

        @self._sio.on(RelayEvent.READY)
        async def on_ready(*_args: Any) -> None:
            self._ready = True
            ready_event.set()

        @self._sio.on("*")
        async def on_any(event: str, data: Any) -> None:
            self._dispatch(event, data)

        @self._sio.event
        async def disconnect(_reason: str = "") -> None:
            self._ready = False
            self._fail_all(ProtocolConfigError("Signing relay disconnected. Please reconnect your wallet."))

        await self._sio.connect(
            self._relay_url,
            auth={"project_id": self._project_id, "metadata": self._metadata},
            transports=self._transports,
            socketio_path=RELAY_PATH,
        )

        try:
            await asyncio.wait_for(ready_event.wait(), timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            await self._sio.disconnect()
            raise ProtocolConfigError(f"Timed out waiting for relay 'ready' event after {self._ready_timeout}s")
        logger.info("Signing relay ready at %s", self._relay_url)

    def _dispatch(self, event: str, raw: Any) -> None:
        envelope = parse_envelope(raw)
        if envelope is None:
            logger.debug("Ignoring malformed %s message from relay", event)
            return
        payload = envelope.payload

        if event in APPROVAL_EVENTS:
            future = self._approvals.pop(payload.pairing_id or "", None)
            if future is None or future.done():
                return
            if event == RelayEvent.PAIRING_APPROVED and not payload.error:
                future.set_result(payload.data or {})
            else:
                future.set_exception(self._error_from(payload.error, "Pairing rejected"))
            return

        if event in REPLY_EVENTS:
            future = self._replies.pop(envelope.metadata.request_id or "", None)
            if future is None or future.done():
                return
            if payload.error:
                future.set_exception(self._error_from(payload.error, "Relay request failed"))
            else:
                future.set_result(payload.data)
            return

        if event == RelayEvent.SESSION_DISCONNECT:
            logger.info("Wallet dropped pairing topic %s", payload.topic)

    @staticmethod
    def _error_from(error: Optional[dict[str, Any]], default: str) -> WalletBridgeError:
        error = error or {}
        return WalletBridgeError("relay_error", str(error.get("message") or default), details=error)

    def _fail_all(self, error: Exception) -> None:
        for table in (self._replies, self._approvals):
            for future in table.values():
                if not future.done():
                    future.set_exception(error)
            table.clear()

    async def _call(self, event_type: str, data: Any, timeout: Optional[float], **fields: Any) -> Any:
        if not self._sio or not self._sio.connected:
            raise ProtocolConfigError("Signing relay not connected")
        request_id = str(uuid.uuid4())
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._replies[request_id] = future
        envelope = build_envelope(
            event_type, data,
            project_id=self._project_id,
            client_id=self._client_id,
            request_id=request_id,
            **fields,
        )
        try:
            await self._sio.emit(event_type, envelope)
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            raise ProtocolConfigError(f"Timeout waiting for {event_type} reply from relay")
        finally:
            self._replies.pop(request_id, None)

    async def connect(self, required_namespaces: dict[str, Any]) -> Tuple[str, Awaitable[dict[str, Any]]]:
        """Open a pairing. Returns the URI and an awaitable approval."""
        pairing_id = str(uuid.uuid4())
        approval: asyncio.Future = asyncio.get_running_loop().create_future()
        self._approvals[pairing_id] = approval
        approval.add_done_callback(lambda _f: self._approvals.pop(pairing_id, None))
        try:
            data = await self._call(
                RelayEvent.PAIRING_CREATE,
                {"required_namespaces": required_namespaces, "metadata": self._metadata},
                timeout=self._reply_timeout,
                pairing_id=pairing_id,
            )
        except Exception:
            self._approvals.pop(pairing_id, None)
            raise
        uri = (data or {}).get("uri")
        if not uri:
            self._approvals.pop(pairing_id, None)
            raise ProtocolConfigError("Relay returned no pairing URI")
        return uri, approval

    async def request(self, topic: str, request: dict[str, Any], chain_id: Optional[str] = None) -> Any:
        """Forward a JSON-RPC request to the wallet. Waits until the wallet answers."""
        return await self._call(RelayEvent.SESSION_REQUEST, request, timeout=None, topic=topic, chain_id=chain_id)

    async def disconnect(self, topic: str, reason: dict[str, Any]) -> None:
        if not self._sio or not self._sio.connected:
            return
        envelope = build_envelope(
            RelayEvent.SESSION_DISCONNECT, {"reason": reason},
            project_id=self._project_id,
            client_id=self._client_id,
            topic=topic,
        )
        await self._sio.emit(RelayEvent.SESSION_DISCONNECT, envelope)

    async def close(self) -> None:
        self._ready = False
        self._fail_all(ProtocolConfigError("Signing relay closed"))
        if self._sio:
            await self._sio.disconnect()
            self._sio = None
