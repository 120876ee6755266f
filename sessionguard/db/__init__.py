"""
Database module - Store contracts and backends.

The authentication core reads and writes users and sessions only through
the UserDirectory and SessionStore interfaces defined here.

Security Considerations:
- No plaintext passwords are ever stored
- Session rows carry no data beyond owner and expiry
- Backend errors never leak driver details to callers
"""

from sessionguard.db.base import (
    DeadlineExceeded,
    DuplicateKeyError,
    SessionStore,
    StoredSession,
    StoreUnavailable,
    User,
    UserDirectory,
)
from sessionguard.db.memory import InMemorySessionStore, InMemoryUserDirectory
from sessionguard.db.sqlite import SQLiteSessionStore, SQLiteUserDirectory

__all__ = [
    "DeadlineExceeded",
    "DuplicateKeyError",
    "SessionStore",
    "StoredSession",
    "StoreUnavailable",
    "User",
    "UserDirectory",
    "InMemorySessionStore",
    "InMemoryUserDirectory",
    "SQLiteSessionStore",
    "SQLiteUserDirectory",
]
