"""
Store Contracts
===============

Records and the two narrow interfaces the authentication core persists
through. Any backend (SQL, key-value, in-process) can implement them.

Contract for implementations:
- ``insert``/``put`` never overwrite: a collision raises DuplicateKeyError
- backend failures surface as StoreUnavailable, never as driver exceptions
- every call accepts an optional Deadline and checks it before writing
- each write is atomic: it either commits fully or leaves no trace
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from sessionguard.core.errors import (
    DeadlineExceeded,
    DuplicateKeyError,
    StoreUnavailable,
)

if TYPE_CHECKING:
    from sessionguard.core.deadline import Deadline


@dataclass(frozen=True, slots=True)
class User:
    """
    User account record.

    Note: password_hash is never exposed in repr.
    """
    id: str
    email: str
    password_hash: str
    created_at: datetime

    def __repr__(self) -> str:
        """Safe representation without password hash."""
        return f"User(id={self.id!r}, email={self.email!r})"


@dataclass(frozen=True, slots=True)
class StoredSession:
    """A session row as held by a SessionStore."""
    user_id: str
    expires_at: datetime


@runtime_checkable
class UserDirectory(Protocol):
    """Email -> user record mapping."""

    def find_by_email(
        self, email: str, *, deadline: Optional[Deadline] = None
    ) -> Optional[User]: ...

    def find_by_id(
        self, user_id: str, *, deadline: Optional[Deadline] = None
    ) -> Optional[User]: ...

    def insert(
        self, email: str, password_hash: str, *, deadline: Optional[Deadline] = None
    ) -> str:
        """Create a user and return its id. Raises DuplicateKeyError("email")."""
        ...

    def update_password_hash(
        self, user_id: str, password_hash: str, *, deadline: Optional[Deadline] = None
    ) -> None: ...

    def delete(self, user_id: str, *, deadline: Optional[Deadline] = None) -> None:
        """Remove a user if present. Sessions referencing it are left in place."""
        ...


@runtime_checkable
class SessionStore(Protocol):
    """Session id -> (user id, expiry) mapping."""

    def put(
        self,
        session_id: str,
        user_id: str,
        expires_at: datetime,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        """Insert a new session. Raises DuplicateKeyError("session_id")."""
        ...

    def get(
        self, session_id: str, *, deadline: Optional[Deadline] = None
    ) -> Optional[StoredSession]: ...

    def delete(
        self, session_id: str, *, deadline: Optional[Deadline] = None
    ) -> None: ...

    def update_expiry(
        self,
        session_id: str,
        expires_at: datetime,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None: ...

    def delete_for_user(
        self, user_id: str, *, deadline: Optional[Deadline] = None
    ) -> int: ...

    def delete_expired(
        self, now: datetime, *, deadline: Optional[Deadline] = None
    ) -> int: ...


__all__ = [
    "User",
    "StoredSession",
    "UserDirectory",
    "SessionStore",
    "StoreUnavailable",
    "DeadlineExceeded",
    "DuplicateKeyError",
]
