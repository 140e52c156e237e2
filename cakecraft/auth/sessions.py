"""
Admin session management.

Bearer tokens issued at admin login, kept in a pluggable key-value store
with a fixed lifetime.
"""

import asyncio
import hmac
import logging
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=24)
DEFAULT_SWEEP_INTERVAL_SECONDS = 60 * 60


class AuthenticationError(Exception):
    """Raised when admin credentials or a session token are rejected."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class AdminSession:
    """An authenticated admin session."""
    username: str
    created_at: datetime

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at > ttl


class SessionStore(ABC):
    """Key-value storage for admin sessions."""

    @abstractmethod
    def get(self, token: str) -> Optional[AdminSession]:
        """Return the session for ``token`` or None."""

    @abstractmethod
    def set(self, token: str, session: AdminSession) -> None:
        """Store a session under ``token``."""

    @abstractmethod
    def delete(self, token: str) -> None:
        """Remove ``token`` if present."""

    @abstractmethod
    def expire(self, now: Optional[datetime] = None) -> int:
        """Remove every expired session.

        Returns:
            Number of sessions removed
        """


class InMemorySessionStore(SessionStore):
    """Process-local session store."""

    def __init__(
        self,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, AdminSession] = {}
        self._lock = threading.Lock()

    def get(self, token: str) -> Optional[AdminSession]:
        with self._lock:
            return self._sessions.get(token)

    def set(self, token: str, session: AdminSession) -> None:
        with self._lock:
            self._sessions[token] = session

    def delete(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def expire(self, now: Optional[datetime] = None) -> int:
        now = now or self._clock()
        with self._lock:
            expired = [
                token for token, session in self._sessions.items()
                if session.is_expired(now, self.ttl)
            ]
            for token in expired:
                del self._sessions[token]
        if expired:
            logger.info("Swept %d expired admin session(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class AdminAuthenticator:
    """Issues and validates admin session tokens."""

    def __init__(
        self,
        store: SessionStore,
        username: str,
        password: str,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the authenticator.

        Args:
            store: Session storage backend
            username: Configured admin username
            password: Configured admin password
            ttl: Lifetime of a session token
            clock: Time source
        """
        if not username or not password:
            raise ValueError("admin username and password are required")
        self.store = store
        self._username = username
        self._password = password
        self.ttl = ttl
        self._clock = clock

    def login(self, username: str, password: str) -> str:
        """Verify credentials and open a session.

        Returns:
            New session token

        Raises:
            AuthenticationError: If the credentials do not match
        """
        user_ok = hmac.compare_digest(username.encode(), self._username.encode())
        password_ok = hmac.compare_digest(password.encode(), self._password.encode())
        if not (user_ok and password_ok):
            logger.warning("Admin authentication failed for username %r", username)
            raise AuthenticationError("Invalid credentials")

        now = self._clock()
        token = f"admin_{int(now.timestamp() * 1000)}_{secrets.token_urlsafe(16)}"
        self.store.set(token, AdminSession(username=username, created_at=now))
        logger.info("Admin session created for %s", username)
        return token

    def authenticate(self, token: Optional[str]) -> AdminSession:
        """Resolve a bearer token to its live session.

        Expired sessions are removed when seen.

        Raises:
            AuthenticationError: If the token is missing, unknown or expired
        """
        if not token:
            raise AuthenticationError("Authentication required")

        session = self.store.get(token)
        if session is None:
            raise AuthenticationError("Invalid or expired session")

        if session.is_expired(self._clock(), self.ttl):
            self.store.delete(token)
            raise AuthenticationError("Session expired")

        return session

    def logout(self, token: str) -> None:
        self.store.delete(token)


class SessionSweeper:
    """Periodically purges expired sessions from a store.

    Runs as an asyncio task owned by the web application lifespan.
    """

    def __init__(self, store: SessionStore, interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS):
        if interval <= 0:
            raise ValueError("sweep interval must be > 0")
        self.store = store
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.store.expire()
