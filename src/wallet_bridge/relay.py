"""
Transaction relay — forwards signing requests to the paired wallet.

A request races a fixed timer. The protocol has no cancel primitive, so when
the timer wins the request keeps running; whatever it produces later is
logged and dropped without touching the pending table.
"""

import asyncio
import functools
import logging
import uuid
from typing import Any, Optional, Union

from pydantic import ValidationError

from wallet_bridge.config import BridgeSettings
from wallet_bridge.errors import (
    ProtocolConfigError,
    TransactionError,
    TransactionFailed,
    TransactionInProgress,
    TransactionRejected,
    TransactionTimeout,
    WalletBridgeError,
    WalletNotConnected,
)
from wallet_bridge.handles import ProtocolBackedHandle
from wallet_bridge.models.events import SignMethod
from wallet_bridge.models.session import Session, UserId
from wallet_bridge.models.transaction import (
    PendingTransaction,
    SendResult,
    TransactionPayload,
    TxRequest,
    to_quantity,
)
from wallet_bridge.negotiator import parse_chain_id
from wallet_bridge.registry import SessionRegistry
from wallet_bridge.uri import wallet_redirect_link

logger = logging.getLogger(__name__)

NOT_ESTABLISHED = "WalletConnect session not properly established. Please reconnect your wallet."


def classify_error(error: BaseException) -> WalletBridgeError:
    """Map a wallet/protocol failure onto the transaction error taxonomy."""
    if isinstance(error, (TransactionError, ProtocolConfigError, WalletNotConnected)):
        return error
    message = str(error)
    details = {"original": message}
    lowered = message.lower()
    if "user rejected" in lowered or "rejected by user" in lowered or "user denied" in lowered:
        return TransactionRejected(details=details)
    if "timeout" in lowered or "timed out" in lowered:
        return TransactionTimeout(details=details)
    if "missing or invalid" in lowered:
        return ProtocolConfigError("WalletConnect configuration error. Please reconnect your wallet.", details)
    return TransactionFailed(f"Transaction failed: {message}", details)


class TransactionRelay:
    def __init__(self, registry: SessionRegistry, settings: BridgeSettings):
        self._registry = registry
        self._settings = settings

    def build_request(self, address: str, payload: TransactionPayload) -> TxRequest:
        gas = payload.gas_limit if payload.gas_limit is not None else self._settings.gas_limit
        gas_price = payload.gas_price if payload.gas_price is not None else self._settings.gas_price
        return TxRequest(
            from_=address,
            to=payload.to,
            data=payload.data or "0x",
            value=to_quantity(payload.value) or "0x0",
            gas=to_quantity(gas),
            gas_price=to_quantity(gas_price),
            chain_id=hex(self._settings.chain_id),
        )

    async def _bound_session(self, user_id: UserId) -> tuple[Session, ProtocolBackedHandle]:
        status = await self._registry.check_connection(user_id)
        session = self._registry.get(user_id)
        if not status.connected or session is None:
            raise WalletNotConnected(details={"reason": status.reason} if status.reason else None)

        handle = session.handle
        if not isinstance(handle, ProtocolBackedHandle) or not handle.can_send:
            raise ProtocolConfigError(NOT_ESTABLISHED, {"manual": session.is_manual})
        return session, handle

    async def send(
        self,
        user_id: UserId,
        payload: Union[TransactionPayload, dict[str, Any]],
        description: str = "Transaction",
    ) -> SendResult:
        session, handle = await self._bound_session(user_id)

        current = self._registry.pending_for(session.id)
        if current is not None and current.status == "pending":
            raise TransactionInProgress(details={"tx_id": current.id, "description": current.description})

        try:
            if not isinstance(payload, TransactionPayload):
                payload = TransactionPayload.model_validate(payload)
            tx_request = self.build_request(session.address or "", payload)
        except (ValidationError, ValueError) as e:
            raise TransactionFailed(f"Invalid transaction payload: {e}", {"original": str(e)}) from e

        pending = PendingTransaction(
            id=str(uuid.uuid4()),
            description=description,
            tx_request=tx_request,
            created_at=self._registry.now(),
        )
        self._registry.set_pending(session.id, pending)

        logger.info("Sending %r request %s to wallet %s", description, pending.id, session.address)
        request = asyncio.ensure_future(handle.send_request(
            SignMethod.SEND_TRANSACTION,
            [tx_request.to_params()],
            chain_id=self._settings.caip_chain,
        ))
        deep_link = self._attempt_wallet_redirect(session)

        timeout = self._settings.request_timeout_s
        discard = functools.partial(self._discard_late_result, session.id, pending.id)
        try:
            done, _ = await asyncio.wait({request}, timeout=timeout)
        except asyncio.CancelledError:
            request.add_done_callback(discard)
            self._mark_failed(session.id, pending, TransactionFailed("Transaction wait cancelled"))
            raise
        if not done:
            request.add_done_callback(discard)
            error = TransactionTimeout(details={"original": f"Transaction request timeout ({timeout:.0f}s)"})
            self._mark_failed(session.id, pending, error)
            logger.warning("Transaction %s timed out after %.0fs", pending.id, timeout)
            raise error

        try:
            tx_hash = request.result()
        except Exception as e:
            error = classify_error(e)
            self._mark_failed(session.id, pending, error)
            logger.error("Transaction %s failed: %s", pending.id, e)
            if error is e:
                raise
            raise error from e

        tx_hash = str(tx_hash)
        if self._registry.is_current(session.id, pending.id):
            pending.status = "sent"
            pending.tx_hash = tx_hash
            self._registry.touch(session)
        else:
            logger.warning("Session %s changed while transaction %s was in flight", session.id, pending.id)
        logger.info("Transaction %s approved: %s", pending.id, tx_hash)

        return SendResult(
            success=True,
            tx_hash=tx_hash,
            tx_id=pending.id,
            address=session.address,
            deep_link=deep_link,
        )

    def _mark_failed(self, session_id: str, pending: PendingTransaction, error: WalletBridgeError) -> None:
        if not self._registry.is_current(session_id, pending.id):
            return
        pending.status = "failed"
        pending.error = str((error.details or {}).get("original") or error)

    @staticmethod
    def _discard_late_result(session_id: str, tx_id: str, request: "asyncio.Future[Any]") -> None:
        if request.cancelled():
            return
        error = request.exception()
        if error is not None:
            logger.info("Late failure for timed out transaction %s (session %s) discarded: %s",
                        tx_id, session_id, error)
        else:
            logger.warning("Late result for timed out transaction %s (session %s) discarded: %s",
                           tx_id, session_id, request.result())

    @staticmethod
    def _attempt_wallet_redirect(session: Session) -> Optional[str]:
        try:
            link = wallet_redirect_link(session.uri)
            if link:
                logger.debug("Wallet redirect link: %s...", link[:50])
            return link
        except Exception as e:
            logger.warning("Failed to create wallet redirect: %s", e)
            return None

    async def refresh_chain_id(self, user_id: UserId) -> Optional[int]:
        """Ask the wallet which chain it is on now and record it."""
        session = self._registry.get(user_id)
        if session is None or not session.connected:
            return None

        handle = session.handle
        if not isinstance(handle, ProtocolBackedHandle) or not handle.can_send:
            return session.chain_id

        try:
            chain_id = parse_chain_id(await handle.send_request(SignMethod.CHAIN_ID, []))
        except Exception as e:
            logger.error("Error refreshing chainId: %s", e)
            return None

        if not self._registry.owns(session, handle):
            return None
        session.chain_id = chain_id
        handle.chain_id = chain_id
        self._registry.touch(session)
        logger.info("Refreshed chainId for user %s: %s", user_id, chain_id)
        return chain_id
