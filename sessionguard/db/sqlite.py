"""
SQLite Stores
=============

UserDirectory and SessionStore backed by a SQLite database file.

Security Features:
- Parameterized queries only (SQL injection safe)
- Case-insensitive unique e-mail constraint (COLLATE NOCASE)
- One transaction per write: rows are either fully committed or absent
- Driver errors are translated to StoreUnavailable with an opaque message

Both stores may share one database file; the sessions table does not
reference the users table, so a session row can outlive its user and is
rejected at validation time instead.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Final, Iterator, Optional

from sessionguard.core.deadline import Deadline, check_deadline, wait_budget
from sessionguard.core.errors import DuplicateKeyError, StoreUnavailable
from sessionguard.db.base import StoredSession, User


_log = logging.getLogger("sessionguard.store")


class _SQLiteBackend:
    """Shared connection handling for the SQLite stores."""

    __slots__ = ("_db_path",)

    _SCHEMA: str = ""

    def __init__(self, db_path: Path | str) -> None:
        """
        Initialize the store and create its schema.

        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = Path(db_path)
        self.initialize_db()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def initialize_db(self) -> None:
        """Create tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(self._SCHEMA)

    @contextmanager
    def _connect(self, deadline: Optional[Deadline] = None) -> Iterator[sqlite3.Connection]:
        """
        Open a connection for a single unit of work.

        Commits on success, rolls back on any exception, always closes.
        Lock waits are bounded by the deadline.
        """
        check_deadline(deadline)
        try:
            conn = sqlite3.connect(self._db_path, timeout=wait_budget(deadline))
        except sqlite3.Error as e:
            _log.error("Could not open database: %s", type(e).__name__)
            raise StoreUnavailable() from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            _log.error("Database operation failed: %s", type(e).__name__)
            raise StoreUnavailable() from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()


class SQLiteUserDirectory(_SQLiteBackend):
    """
    UserDirectory backed by SQLite.

    Usage:
        users = SQLiteUserDirectory(db_path)
        user_id = users.insert("alice@example.com", encoded_hash)
        user = users.find_by_email("ALICE@example.com")
    """

    __slots__ = ()

    _SCHEMA: Final[str] = """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE NOT NULL COLLATE NOCASE,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
    """

    def find_by_email(self, email: str, *, deadline: Optional[Deadline] = None) -> Optional[User]:
        with self._connect(deadline) as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ? COLLATE NOCASE",
                (email,)
            ).fetchone()
        return self._row_to_user(row) if row else None

    def find_by_id(self, user_id: str, *, deadline: Optional[Deadline] = None) -> Optional[User]:
        with self._connect(deadline) as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE id = ?",
                (user_id,)
            ).fetchone()
        return self._row_to_user(row) if row else None

    def insert(self, email: str, password_hash: str, *, deadline: Optional[Deadline] = None) -> str:
        user_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()

        try:
            with self._connect(deadline) as conn:
                conn.execute("""
                    INSERT INTO users (id, email, password_hash, created_at)
                    VALUES (?, ?, ?, ?)
                """, (user_id, email, password_hash, now))
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError("email") from e

        return user_id

    def update_password_hash(
        self, user_id: str, password_hash: str, *, deadline: Optional[Deadline] = None
    ) -> None:
        with self._connect(deadline) as conn:
            conn.execute(
                "UPDATE users SET password_hash = ? WHERE id = ?",
                (password_hash, user_id)
            )

    def delete(self, user_id: str, *, deadline: Optional[Deadline] = None) -> None:
        """
        Permanently delete a user.

        Sessions of the user stay in the session store until they are
        next validated or purged.
        """
        with self._connect(deadline) as conn:
            conn.execute("DELETE FROM users WHERE id = ?", (user_id,))

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        """Convert a database row to a User object."""
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteSessionStore(_SQLiteBackend):
    """
    SessionStore backed by SQLite.

    Expiry timestamps are stored as UTC ISO-8601 text, which sorts
    chronologically and keeps range deletes index-friendly.
    """

    __slots__ = ()

    _SCHEMA: Final[str] = """
    CREATE TABLE IF NOT EXISTS sessions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        expires_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id);
    CREATE INDEX IF NOT EXISTS idx_sessions_expires ON sessions(expires_at);
    """

    def put(
        self,
        session_id: str,
        user_id: str,
        expires_at: datetime,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        try:
            with self._connect(deadline) as conn:
                conn.execute("""
                    INSERT INTO sessions (id, user_id, expires_at)
                    VALUES (?, ?, ?)
                """, (session_id, user_id, _to_text(expires_at)))
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError("session_id") from e

    def get(self, session_id: str, *, deadline: Optional[Deadline] = None) -> Optional[StoredSession]:
        with self._connect(deadline) as conn:
            row = conn.execute(
                "SELECT user_id, expires_at FROM sessions WHERE id = ?",
                (session_id,)
            ).fetchone()

        if not row:
            return None

        return StoredSession(
            user_id=row["user_id"],
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )

    def delete(self, session_id: str, *, deadline: Optional[Deadline] = None) -> None:
        with self._connect(deadline) as conn:
            conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))

    def update_expiry(
        self,
        session_id: str,
        expires_at: datetime,
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        with self._connect(deadline) as conn:
            conn.execute(
                "UPDATE sessions SET expires_at = ? WHERE id = ?",
                (_to_text(expires_at), session_id)
            )

    def delete_for_user(self, user_id: str, *, deadline: Optional[Deadline] = None) -> int:
        with self._connect(deadline) as conn:
            result = conn.execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))
            return result.rowcount

    def delete_expired(self, now: datetime, *, deadline: Optional[Deadline] = None) -> int:
        with self._connect(deadline) as conn:
            result = conn.execute(
                "DELETE FROM sessions WHERE expires_at <= ?",
                (_to_text(now),)
            )
            return result.rowcount


def _to_text(moment: datetime) -> str:
    """Normalize to UTC ISO text so string order matches time order."""
    if moment.tzinfo is None:
        raise ValueError("Session timestamps must be timezone-aware")
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")
