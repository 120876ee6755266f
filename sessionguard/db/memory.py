"""
In-Process Stores
=================

Dictionary-backed UserDirectory and SessionStore.

Suitable for tests and single-process deployments. Each instance guards
its data with a lock, so it is safe to share between request threads.
Contents are lost when the process exits.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from sessionguard.core.deadline import Deadline, check_deadline
from sessionguard.core.errors import DuplicateKeyError
from sessionguard.db.base import StoredSession, User


class InMemoryUserDirectory:
    """UserDirectory keeping users in a dict, unique on lower-cased email."""

    __slots__ = ("_users", "_by_email", "_lock")

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._by_email: Dict[str, str] = {}
        self._lock = threading.Lock()

    def find_by_email(self, email: str, *, deadline: Optional[Deadline] = None) -> Optional[User]:
        check_deadline(deadline)
        with self._lock:
            user_id = self._by_email.get(email.lower())
            return self._users.get(user_id) if user_id else None

    def find_by_id(self, user_id: str, *, deadline: Optional[Deadline] = None) -> Optional[User]:
        check_deadline(deadline)
        with self._lock:
            return self._users.get(user_id)

    def insert(self, email: str, password_hash: str, *, deadline: Optional[Deadline] = None) -> str:
        check_deadline(deadline)
        key = email.lower()
        with self._lock:
            if key in self._by_email:
                raise DuplicateKeyError("email")
            user = User(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=password_hash,
                created_at=datetime.now(timezone.utc),
            )
            self._users[user.id] = user
            self._by_email[key] = user.id
            return user.id

    def update_password_hash(
        self, user_id: str, password_hash: str, *, deadline: Optional[Deadline] = None
    ) -> None:
        check_deadline(deadline)
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return
            self._users[user_id] = User(
                id=user.id,
                email=user.email,
                password_hash=password_hash,
                created_at=user.created_at,
            )

    def delete(self, user_id: str, *, deadline: Optional[Deadline] = None) -> None:
        """Drop a user record. Sessions referencing it are left in place."""
        check_deadline(deadline)
        with self._lock:
            user = self._users.pop(user_id, None)
            if user is not None:
                self._by_email.pop(user.email.lower(), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)


class InMemorySessionStore:
    """SessionStore keeping sessions in a dict keyed by session id."""

    __slots__ = ("_sessions", "_lock")

    def __init__(self) -> None:
        self._sessions: Dict[str, StoredSession] = {}
        self._lock = threading.Lock()

    def put(
        self,
        session_id: str,
        user_id: str,
        expires_at: datetime,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        check_deadline(deadline)
        with self._lock:
            if session_id in self._sessions:
                raise DuplicateKeyError("session_id")
            self._sessions[session_id] = StoredSession(user_id=user_id, expires_at=expires_at)

    def get(self, session_id: str, *, deadline: Optional[Deadline] = None) -> Optional[StoredSession]:
        check_deadline(deadline)
        with self._lock:
            return self._sessions.get(session_id)

    def delete(self, session_id: str, *, deadline: Optional[Deadline] = None) -> None:
        check_deadline(deadline)
        with self._lock:
            self._sessions.pop(session_id, None)

    def update_expiry(
        self,
        session_id: str,
        expires_at: datetime,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        check_deadline(deadline)
        with self._lock:
            current = self._sessions.get(session_id)
            if current is not None:
                self._sessions[session_id] = StoredSession(
                    user_id=current.user_id, expires_at=expires_at
                )

    def delete_for_user(self, user_id: str, *, deadline: Optional[Deadline] = None) -> int:
        check_deadline(deadline)
        with self._lock:
            doomed = [sid for sid, row in self._sessions.items() if row.user_id == user_id]
            for sid in doomed:
                del self._sessions[sid]
            return len(doomed)

    def delete_expired(self, now: datetime, *, deadline: Optional[Deadline] = None) -> int:
        check_deadline(deadline)
        with self._lock:
            doomed = [sid for sid, row in self._sessions.items() if row.expires_at <= now]
            for sid in doomed:
                del self._sessions[sid]
            return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
