"""
Session registry — the only owner of the session, user index and pending
transaction tables.

Invariant: ``_user_index[user_id] == session.id`` exactly when
``_sessions[session.id].user_id == user_id``. Nothing is reachable by user id
after ``remove``.
"""

import asyncio
import logging
import time
import uuid
import weakref
from typing import Callable, Optional

from wallet_bridge.models.session import (
    NO_SESSION,
    SESSION_EXPIRED,
    SESSION_TIMEOUT,
    BridgeStats,
    ConnectionStatus,
    Session,
    UserId,
)
from wallet_bridge.models.transaction import PendingTransaction

logger = logging.getLogger(__name__)

DEFAULT_IDLE_WINDOW_S = 30 * 60.0
DEFAULT_SWEEP_INTERVAL_S = 10 * 60.0


class SessionRegistry:
    def __init__(
        self,
        idle_window_s: float = DEFAULT_IDLE_WINDOW_S,
        sweep_interval_s: float = DEFAULT_SWEEP_INTERVAL_S,
        clock: Callable[[], float] = time.time,
    ):
        self._idle_window_s = idle_window_s
        self._sweep_interval_s = sweep_interval_s
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._user_index: dict[UserId, str] = {}
        self._pending: dict[str, PendingTransaction] = {}
        self._locks: "weakref.WeakValueDictionary[UserId, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._sweeper: Optional[asyncio.Task] = None

    def now(self) -> float:
        return self._clock()

    @property
    def idle_window_s(self) -> float:
        return self._idle_window_s

    def user_lock(self, user_id: UserId) -> asyncio.Lock:
        """Per-user lock serializing disconnect-then-create."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    # --- lookup ---

    def get(self, user_id: UserId) -> Optional[Session]:
        session_id = self._user_index.get(user_id)
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def get_by_id(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def owns(self, session: Session, handle: object) -> bool:
        """True while ``session`` is still registered and still bound to ``handle``."""
        return self._sessions.get(session.id) is session and session.handle is handle

    def is_expired(self, session: Session) -> bool:
        return self.now() - session.last_activity > self._idle_window_s

    def touch(self, session: Session) -> None:
        session.last_activity = self.now()

    # --- lifecycle ---

    async def create(self, user_id: UserId) -> Session:
        """Replace any session the user has with a fresh, unbound one."""
        existing = self.get(user_id)
        if existing is not None:
            logger.info("Replacing session %s for user %s", existing.id, user_id)
            await self.teardown(existing)
        elif user_id in self._user_index:
            del self._user_index[user_id]

        session = Session(id=str(uuid.uuid4()), user_id=user_id, created_at=self.now())
        self._sessions[session.id] = session
        self._user_index[user_id] = session.id
        return session

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        self._pending.pop(session_id, None)
        if session is not None and self._user_index.get(session.user_id) == session_id:
            del self._user_index[session.user_id]

    async def teardown(self, session: Session) -> None:
        """Close the session's handle (best effort) and forget the session."""
        handle = session.handle
        try:
            if handle is not None:
                await handle.close()
        except Exception as e:
            logger.warning("Disconnect error for session %s: %s", session.id, e)
        finally:
            self.remove(session.id)

    async def check_connection(self, user_id: UserId) -> ConnectionStatus:
        session_id = self._user_index.get(user_id)
        if session_id is None:
            return ConnectionStatus(connected=False, reason=NO_SESSION)

        session = self._sessions.get(session_id)
        if session is None:
            del self._user_index[user_id]
            return ConnectionStatus(connected=False, reason=SESSION_EXPIRED)

        if self.is_expired(session):
            logger.info("Session %s for user %s timed out", session.id, user_id)
            await self.teardown(session)
            return ConnectionStatus(connected=False, reason=SESSION_TIMEOUT)

        return ConnectionStatus(
            connected=session.connected,
            address=session.address,
            chain_id=session.chain_id,
            session_id=session.id,
        )

    # --- pending transactions ---

    def set_pending(self, session_id: str, pending: PendingTransaction) -> None:
        if session_id in self._sessions:
            self._pending[session_id] = pending

    def pending_for(self, session_id: str) -> Optional[PendingTransaction]:
        return self._pending.get(session_id)

    def clear_pending(self, session_id: str) -> None:
        self._pending.pop(session_id, None)

    def is_current(self, session_id: str, tx_id: str) -> bool:
        pending = self._pending.get(session_id)
        return pending is not None and pending.id == tx_id

    # --- expiry ---

    async def sweep(self) -> int:
        expired = [s for s in self._sessions.values() if self.is_expired(s)]
        for session in expired:
            logger.info("Cleaning up expired session %s", session.id)
            await self.teardown(session)
        return len(expired)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval_s)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Idle sweep failed")

    def start(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def shutdown(self) -> None:
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
        for session in list(self._sessions.values()):
            await self.teardown(session)
        self._sessions.clear()
        self._user_index.clear()
        self._pending.clear()

    def stats(self) -> BridgeStats:
        return BridgeStats(
            total_sessions=len(self._sessions),
            connected_sessions=sum(1 for s in self._sessions.values() if s.connected),
            pending_transactions=len(self._pending),
            active_sessions=len(self._user_index),
        )

    def __len__(self) -> int:
        return len(self._sessions)
