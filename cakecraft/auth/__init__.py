"""
Admin authentication for CakeCraft.
"""

from .sessions import (
    AdminAuthenticator,
    AdminSession,
    AuthenticationError,
    InMemorySessionStore,
    SessionStore,
    SessionSweeper,
)

__all__ = [
    "AdminAuthenticator",
    "AdminSession",
    "AuthenticationError",
    "InMemorySessionStore",
    "SessionStore",
    "SessionSweeper",
]
