"""
Connection negotiator — opens pairings and turns approvals into connected sessions.

Approval arrives asynchronously, and the chat layer may also be polling
``check_connection``. Both paths end in ``mark_connected``, which emits
``walletConnected`` at most once per session.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from wallet_bridge.config import BridgeSettings
from wallet_bridge.errors import ConnectionTimeout, ProtocolConfigError, SessionError, WalletBridgeError
from wallet_bridge.handles import ConnectionHandle, ManualFallbackHandle, ProtocolBackedHandle
from wallet_bridge.models.events import (
    REQUIRED_EVENTS,
    REQUIRED_METHODS,
    BridgeEvent,
    HandleEvent,
    SignMethod,
)
from wallet_bridge.models.session import (
    ApprovedSession,
    PairingFailed,
    PairingResult,
    Session,
    UserId,
    WalletConnected,
)
from wallet_bridge.registry import SessionRegistry
from wallet_bridge.transport.base import SignClient
from wallet_bridge.uri import generate_manual_uri, validate_uri

logger = logging.getLogger(__name__)

Emit = Callable[[str, Any], None]


def parse_chain_id(value: Any) -> int:
    """eth_chainId answers with a hex string; some wallets answer with an int."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    return int(text, 16) if text.lower().startswith("0x") else int(text)


class ConnectionNegotiator:
    def __init__(
        self,
        registry: SessionRegistry,
        settings: BridgeSettings,
        sign_client: Optional[SignClient] = None,
        emit: Optional[Emit] = None,
    ):
        self._registry = registry
        self._settings = settings
        self._sign_client = sign_client
        self._emit = emit or (lambda _event, _data: None)

    @property
    def sign_client(self) -> Optional[SignClient]:
        return self._sign_client

    @sign_client.setter
    def sign_client(self, client: Optional[SignClient]) -> None:
        self._sign_client = client

    @property
    def protocol_available(self) -> bool:
        return self._sign_client is not None and self._settings.protocol_enabled

    def required_namespaces(self) -> dict[str, Any]:
        return {
            "eip155": {
                "methods": list(REQUIRED_METHODS),
                "chains": [self._settings.caip_chain],
                "events": list(REQUIRED_EVENTS),
            }
        }

    async def create_session(self, user_id: UserId) -> PairingResult:
        """Pair a wallet for ``user_id``, replacing any session the user already has."""
        async with self._registry.user_lock(user_id):
            try:
                session = await self._registry.create(user_id)
            except Exception as e:
                logger.error("Error creating wallet session for user %s: %s", user_id, e)
                raise SessionError(f"Failed to create wallet session: {e}") from e

            handle: ConnectionHandle
            approval: Optional[Awaitable[dict[str, Any]]] = None
            try:
                handle, approval = await self._open_protocol_handle()
            except Exception as e:
                logger.warning("Signing protocol unavailable, using manual URI: %s", e)
                handle = self._open_manual_handle()

            session.handle = handle
            session.uri = handle.uri
            session.is_manual = handle.is_manual

            if approval is not None and isinstance(handle, ProtocolBackedHandle):
                handle.approval_task = asyncio.get_running_loop().create_task(
                    self._await_approval(session, handle, approval)
                )

        valid = validate_uri(handle.uri)
        if not valid:
            logger.warning("Pairing URI for session %s failed validation; returning it anyway", session.id)
        logger.info(
            "Created %s session %s for user %s (URI validation: %s)",
            "manual" if session.is_manual else "protocol",
            session.id, user_id, "PASS" if valid else "FAIL",
        )
        return PairingResult(session_id=session.id, uri=handle.uri, handle=handle)

    async def _open_protocol_handle(self) -> tuple[ProtocolBackedHandle, Awaitable[dict[str, Any]]]:
        if self._sign_client is None or not self._settings.protocol_enabled:
            raise ProtocolConfigError("Signing protocol not available - missing project ID")
        uri, approval = await self._sign_client.connect(self.required_namespaces())
        return ProtocolBackedHandle(uri, self._sign_client), approval

    def _open_manual_handle(self) -> ManualFallbackHandle:
        pairing = generate_manual_uri(self._settings.walletconnect_bridge)
        return ManualFallbackHandle(pairing.uri, peer_id=pairing.session_id, chain_id=self._settings.chain_id)

    async def _await_approval(
        self,
        session: Session,
        handle: ProtocolBackedHandle,
        approval: Awaitable[dict[str, Any]],
    ) -> None:
        try:
            raw = await asyncio.wait_for(approval, timeout=self._settings.connection_timeout_s)
            approved = ApprovedSession.model_validate(raw)
        except asyncio.TimeoutError:
            self._pairing_failed(session, handle, ConnectionTimeout(
                f"No wallet approval within {self._settings.connection_timeout_s:.0f}s"
            ))
            return
        except Exception as e:
            error = e if isinstance(e, WalletBridgeError) else WalletBridgeError(
                "pairing_failed", f"Wallet pairing failed: {e}"
            )
            self._pairing_failed(session, handle, error)
            return

        try:
            await self._resolve_approval(session, handle, approved)
        except Exception:
            logger.exception("Failed to apply approval for session %s", session.id)

    async def _resolve_approval(self, session: Session, handle: ProtocolBackedHandle, approved: ApprovedSession) -> None:
        if not self._registry.owns(session, handle):
            logger.info("Discarding approval for superseded session %s", session.id)
            return

        accounts = approved.grant().accounts
        chain_id = approved.chain_id()
        handle.bind(approved.topic, accounts, chain_id)

        required = self._settings.chain_id
        if chain_id is None or chain_id != required:
            chain_id = await self._query_chain_id(handle)
            handle.chain_id = chain_id
            if not self._registry.owns(session, handle):
                logger.info("Session %s was replaced while resolving its chain", session.id)
                return

        address = approved.first_address()
        if not address:
            logger.warning("Approval for session %s carried no account", session.id)
            return

        handle.emit(HandleEvent.CONNECT, {"accounts": [address], "chain_id": chain_id})
        logger.info("Wallet connected: %s on chain %s (session %s)", address, chain_id, session.id)
        self.mark_connected(session, address=address, chain_id=chain_id)

    async def _query_chain_id(self, handle: ProtocolBackedHandle) -> int:
        try:
            answer = await handle.send_request(SignMethod.CHAIN_ID, [])
            chain_id = parse_chain_id(answer)
            logger.info("Retrieved chainId from wallet: %s", chain_id)
            return chain_id
        except Exception as e:
            logger.warning("Failed to get chainId from wallet: %s", e)
            return self._settings.chain_id

    def _pairing_failed(self, session: Session, handle: ProtocolBackedHandle, error: WalletBridgeError) -> None:
        logger.error("Wallet approval failed for session %s: %s", session.id, error)
        handle.emit(HandleEvent.DISCONNECT, error)
        if self._registry.owns(session, handle):
            self._emit(BridgeEvent.PAIRING_FAILED, PairingFailed(
                user_id=session.user_id,
                session_id=session.id,
                code=error.code,
                message=str(error),
            ))

    def mark_connected(
        self,
        session: Session,
        address: Optional[str] = None,
        chain_id: Optional[int] = None,
    ) -> bool:
        """Record the connection and notify once.

        Called by the approval path with the approved address and chain, and by
        pollers with no arguments once they observe ``connected``. Returns True
        only for the call that emitted ``walletConnected``.
        """
        if self._registry.get_by_id(session.id) is not session:
            return False

        if address is not None:
            session.connected = True
            session.address = address
            session.chain_id = chain_id
            self._registry.touch(session)

        if not session.connected or not session.address:
            return False
        if session.notification_sent:
            logger.debug("Skipping duplicate notification for user %s", session.user_id)
            return False
        session.notification_sent = True

        self._emit(BridgeEvent.WALLET_CONNECTED, WalletConnected(
            user_id=session.user_id,
            address=session.address,
            chain_id=session.chain_id,
            session_id=session.id,
            chain_mismatch=session.chain_id != self._settings.chain_id,
        ))
        logger.info("Emitted walletConnected for user %s", session.user_id)
        return True
