"""
security/sessions.py
--------------------
Per-user login sessions with expiry.

Each Telegram user gets their own session slot, keyed by their Telegram
id, so several people can be logged in to the same bot process at once.
The session only remembers *who* logged in; permissions are re-read from
the database on every request (see security/auth.py).
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Hashable, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Session:
    user_id: int
    username: str
    expires_at: float


class SessionStore:
    """In-memory session table with a fixed time-to-live."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[Hashable, Session] = {}
        self._lock = threading.Lock()

    def login(self, key: Hashable, user: dict) -> Session:
        """Open (or replace) the session for ``key``."""
        session = Session(
            user_id=user["id"],
            username=user["username"],
            expires_at=self._clock() + self.ttl_seconds,
        )
        with self._lock:
            self._sessions[key] = session
        logger.info(f"Session opened for {user['username']} (key={key})")
        return session

    def get(self, key: Hashable) -> Optional[Session]:
        """The live session for ``key``; expired sessions are dropped."""
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return None
            if session.expires_at <= self._clock():
                del self._sessions[key]
                logger.info(f"Session expired for {session.username} (key={key})")
                return None
            return session

    def logout(self, key: Hashable) -> bool:
        with self._lock:
            return self._sessions.pop(key, None) is not None

    def drop_user(self, user_id: int) -> int:
        """Close every session of a user (e.g. after the account is deleted)."""
        with self._lock:
            keys = [k for k, s in self._sessions.items() if s.user_id == user_id]
            for key in keys:
                del self._sessions[key]
        return len(keys)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, s in self._sessions.items() if s.expires_at <= now]
            for key in expired:
                del self._sessions[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
