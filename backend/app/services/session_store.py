"""
Session Store Service - In-memory conversation sessions with idle expiry.

Sessions expire after a period of inactivity. Expired ids are remembered
for a while so a late message gets an explicit expiry reply instead of
silently starting a new conversation.
"""
import asyncio
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from app.core import settings, utcnow
from app.core.logging import logger
from app.orchestration.delivery.state import Session, create_initial_session


class ExpiredMarker:
    """Returned by `resolve` for sessions that timed out."""

    def __repr__(self) -> str:
        return "EXPIRED"


EXPIRED = ExpiredMarker()

ResolveResult = Union[Session, ExpiredMarker, None]


class SessionStore(ABC):
    """Abstract base class for session storage."""

    @abstractmethod
    def resolve(self, session_id: str) -> ResolveResult:
        """Get a live session (refreshing its activity), EXPIRED, or None."""
        pass

    @abstractmethod
    def create(self, session_id: str) -> Session:
        """Create a session in the initial state (returns the existing one if present)."""
        pass

    @abstractmethod
    def commit(self, session: Session) -> bool:
        """Store a transitioned session if nothing changed it in the meantime."""
        pass

    @abstractmethod
    def remove(self, session_id: str) -> bool:
        """Delete a session and forget that it ever expired."""
        pass

    @abstractmethod
    def is_expired(self, session_id: str) -> bool:
        """Whether the id is on the known-expired set."""
        pass

    @abstractmethod
    def sweep(self) -> List[str]:
        """Expire idle sessions; returns the ids that were expired."""
        pass

    @abstractmethod
    def expire_now(self, session_id: str) -> bool:
        """Make a session expire on its next message."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of live sessions."""
        pass


class InMemorySessionStore(SessionStore):
    """
    Process-local session store.

    Every read-modify-write happens under one lock. The lock is never held
    while the conversation engine talks to external services; instead each
    commit is checked against the version the transition started from.
    """

    def __init__(
        self,
        idle_timeout: timedelta = timedelta(seconds=settings.SESSION_IDLE_TIMEOUT_SECONDS),
        expired_retention: timedelta = timedelta(seconds=settings.EXPIRED_SESSION_RETENTION_SECONDS),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.idle_timeout = idle_timeout
        self.expired_retention = expired_retention
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._expired: Dict[str, datetime] = {}
        self._lock = threading.RLock()

    def _is_idle(self, session: Session, now: datetime) -> bool:
        return now - session.last_active_at > self.idle_timeout

    def _expire(self, session_id: str, now: datetime) -> None:
        """Move a session onto the known-expired set. Caller holds the lock."""
        self._sessions.pop(session_id, None)
        self._expired[session_id] = now

    def _forget_old_markers(self, now: datetime) -> None:
        stale = [k for k, expired_at in self._expired.items() if now - expired_at > self.expired_retention]
        for key in stale:
            del self._expired[key]

    def resolve(self, session_id: str) -> ResolveResult:
        now = self._clock()
        with self._lock:
            expired_at = self._expired.get(session_id)
            if expired_at is not None:
                if now - expired_at <= self.expired_retention:
                    return EXPIRED
                del self._expired[session_id]

            session = self._sessions.get(session_id)
            if session is None:
                return None

            if self._is_idle(session, now):
                self._expire(session_id, now)
                inactive = int((now - session.last_active_at).total_seconds())
                logger.info(f"Session expired: {session_id} ({inactive}s inactive)")
                return EXPIRED

            session = replace(session, last_active_at=now)
            self._sessions[session_id] = session
            return session

    def create(self, session_id: str) -> Session:
        with self._lock:
            existing = self._sessions.get(session_id)
            if existing is not None:
                return existing
            session = create_initial_session(session_id, self._clock())
            self._sessions[session_id] = session
        logger.info(f"Created new session: {session_id}")
        return session

    def commit(self, session: Session) -> bool:
        with self._lock:
            stored = self._sessions.get(session.id)
            if stored is None or stored.version != session.version:
                return False
            self._sessions[session.id] = replace(
                session,
                version=session.version + 1,
                last_active_at=stored.last_active_at,
            )
            return True

    def get(self, session_id: str) -> Optional[Session]:
        """Peek at a live session without refreshing its activity."""
        with self._lock:
            return self._sessions.get(session_id)

    def is_expired(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._expired

    def remove(self, session_id: str) -> bool:
        with self._lock:
            existed = self._sessions.pop(session_id, None) is not None
            self._expired.pop(session_id, None)
        if existed:
            logger.info(f"Removed session: {session_id}")
        return existed

    def expire_now(self, session_id: str) -> bool:
        """Backdate a session's activity so its next message expires it."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            backdated = self._clock() - self.idle_timeout - timedelta(minutes=1)
            self._sessions[session_id] = replace(session, last_active_at=backdated)
        logger.info(f"Manually expired session: {session_id}")
        return True

    def sweep(self) -> List[str]:
        now = self._clock()
        with self._lock:
            idle = [k for k, s in self._sessions.items() if self._is_idle(s, now)]
            for session_id in idle:
                self._expire(session_id, now)
            self._forget_old_markers(now)
        for session_id in idle:
            logger.info(f"Cleaned up expired session: {session_id}")
        return idle

    def count(self) -> int:
        """Get the number of live sessions."""
        with self._lock:
            return len(self._sessions)


async def run_session_sweeper(
    store: SessionStore,
    interval_seconds: float = settings.SESSION_SWEEP_INTERVAL_SECONDS,
) -> None:
    """Periodically expire idle sessions until cancelled."""
    logger.info(f"Session sweeper started (every {interval_seconds}s)")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            store.sweep()
        except Exception:
            logger.exception("Session sweep failed")


# Singleton session store instance
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get the session store instance (creates if needed)."""
    global _session_store

    if _session_store is None:
        logger.info("Using in-memory session store")
        _session_store = InMemorySessionStore()

    return _session_store
