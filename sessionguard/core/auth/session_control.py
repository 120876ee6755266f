"""
Session Control
================

Session lifecycle management with sliding expiration.

Security Features:
- Cryptographically random session ids (256 bits of entropy)
- Store is the sole source of truth: every validation re-reads it
- Expired, orphaned and unknown sessions produce a clearing cookie
- Sliding expiration inside a renewal window
- Session ids never logged in full

State machine per session:
    nonexistent -> active -> (refreshed | expired | invalidated) -> nonexistent

Failure Model:
    "Not found" and "expired" are ordinary outcomes returned as a
    SessionValidation with no user. Only StoreUnavailable is raised.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Final, Optional

from sessionguard.core.auth.cookies import CookieFactory, SessionCookie
from sessionguard.core.config import SessionConfig
from sessionguard.core.deadline import Deadline
from sessionguard.core.errors import DuplicateKeyError, StoreUnavailable
from sessionguard.db.base import SessionStore, User, UserDirectory


SESSION_ID_BYTES: Final[int] = 32  # 256 bits


@dataclass(frozen=True, slots=True)
class Session:
    """
    An authenticated user's active login.

    ``fresh`` is not persisted: it is True when this call created or
    extended the session, meaning the caller must re-send the cookie.
    """
    id: str
    user_id: str
    expires_at: datetime
    fresh: bool = False

    def __repr__(self) -> str:
        """Safe representation without the full session id."""
        return (
            f"Session(id={self.id[:8]!r}..., user_id={self.user_id!r}, "
            f"expires_at={self.expires_at.isoformat()}, fresh={self.fresh})"
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the session has expired."""
        return (now or datetime.now(timezone.utc)) >= self.expires_at


@dataclass(frozen=True, slots=True)
class SessionValidation:
    """
    Result of validating a session id.

    ``user`` and ``session`` are both set or both None. ``cookie`` is the
    cookie the caller must send back: a refreshed one, a blank one that
    clears a stale session, or None when nothing needs sending.
    """
    user: Optional[User] = None
    session: Optional[Session] = None
    cookie: Optional[SessionCookie] = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None


class SessionManager:
    """
    Creates, validates, refreshes and invalidates sessions.

    The only component that writes to the SessionStore. Holds no session
    state of its own, so one instance can serve every request thread.

    Usage:
        manager = SessionManager(session_store, user_directory, config.session, cookies)

        # After successful authentication
        session, cookie = manager.create_session(user.id)

        # On every protected request
        result = manager.validate_session(cookie_value)
        if result.cookie is not None:
            response.set_cookie_header(result.cookie.serialize())

        # Logout
        manager.invalidate_session(cookie_value)
    """

    __slots__ = ("_sessions", "_users", "_config", "_cookies", "_log")

    def __init__(
        self,
        sessions: SessionStore,
        users: UserDirectory,
        config: Optional[SessionConfig] = None,
        cookies: Optional[CookieFactory] = None,
    ) -> None:
        """
        Initialize the session manager.

        Args:
            sessions: Backing session store
            users: User directory used to resolve session owners
            config: Session configuration (default: 30 day TTL)
            cookies: Cookie factory (default: built from config, Secure)
        """
        self._sessions = sessions
        self._users = users
        self._config = config or SessionConfig()
        self._cookies = cookies or CookieFactory(
            name=self._config.cookie_name,
            domain=self._config.cookie_domain,
            secure=self._config.cookie_secure if self._config.cookie_secure is not None else True,
            max_age=self._config.ttl_seconds if self._config.persistent else None,
        )
        self._log = logging.getLogger("sessionguard.session")

    @property
    def cookie_name(self) -> str:
        return self._cookies.name

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self._config.ttl_seconds)

    @property
    def renewal_window(self) -> timedelta:
        return timedelta(seconds=self._config.renewal_window_seconds)

    @staticmethod
    def _generate_session_id() -> str:
        """Generate a cryptographically secure session id."""
        return secrets.token_urlsafe(SESSION_ID_BYTES)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def create_session(
        self,
        user_id: str,
        *,
        deadline: Optional[Deadline] = None,
    ) -> tuple[Session, SessionCookie]:
        """
        Create a new session for a user.

        Args:
            user_id: Id of the authenticated user
            deadline: Optional request deadline

        Returns:
            (Session, SessionCookie) with ``session.fresh`` set

        Raises:
            StoreUnavailable: If the store fails or no unused id was found
        """
        if not user_id:
            raise ValueError("user_id cannot be empty")

        expires_at = self._now() + self.ttl

        for _ in range(self._config.max_create_attempts):
            session_id = self._generate_session_id()
            try:
                self._sessions.put(session_id, user_id, expires_at, deadline=deadline)
            except DuplicateKeyError:
                self._log.warning("Session id collision, retrying")
                continue

            session = Session(id=session_id, user_id=user_id, expires_at=expires_at, fresh=True)
            self._log.info("Session created: %s... user=%s", session_id[:8], user_id)
            return session, self._cookies.session_cookie(session_id)

        self._log.error("Could not allocate a unique session id for user=%s", user_id)
        raise StoreUnavailable()

    def validate_session(
        self,
        session_id: Optional[str],
        *,
        deadline: Optional[Deadline] = None,
    ) -> SessionValidation:
        """
        Validate a session id and slide its expiry if due.

        Args:
            session_id: Raw cookie value (may be None or empty)
            deadline: Optional request deadline

        Returns:
            SessionValidation; unauthenticated results carry a blank
            cookie whenever a non-empty id was presented

        Raises:
            StoreUnavailable: If the store or directory fails
        """
        if not session_id:
            return SessionValidation()

        stored = self._sessions.get(session_id, deadline=deadline)
        if stored is None:
            self._log.debug("Unknown session: %s...", session_id[:8])
            return self._rejected()

        now = self._now()
        if now >= stored.expires_at:
            self._sessions.delete(session_id, deadline=deadline)
            self._log.info("Session expired: %s... user=%s", session_id[:8], stored.user_id)
            return self._rejected()

        user = self._users.find_by_id(stored.user_id, deadline=deadline)
        if user is None:
            self._sessions.delete(session_id, deadline=deadline)
            self._log.info("Session owner missing: %s... user=%s", session_id[:8], stored.user_id)
            return self._rejected()

        session = Session(id=session_id, user_id=stored.user_id, expires_at=stored.expires_at)

        if stored.expires_at - now <= self.renewal_window:
            session = self._refresh(session, now, deadline)
            return SessionValidation(
                user=user,
                session=session,
                cookie=self._cookies.session_cookie(session_id),
            )

        return SessionValidation(user=user, session=session)

    def _refresh(self, session: Session, now: datetime, deadline: Optional[Deadline]) -> Session:
        """Extend a session's expiry by a full TTL."""
        new_expires = now + self.ttl
        self._sessions.update_expiry(session.id, new_expires, deadline=deadline)
        self._log.info("Session refreshed: %s... user=%s", session.id[:8], session.user_id)
        return replace(session, expires_at=new_expires, fresh=True)

    def _rejected(self) -> SessionValidation:
        return SessionValidation(cookie=self._cookies.blank_cookie())

    def invalidate_session(
        self,
        session_id: Optional[str],
        *,
        deadline: Optional[Deadline] = None,
    ) -> None:
        """
        Invalidate a session (logout). Idempotent.

        Callers pair this with sending ``blank_cookie()``.
        """
        if not session_id:
            return
        self._sessions.delete(session_id, deadline=deadline)
        self._log.info("Session invalidated: %s...", session_id[:8])

    def invalidate_user_sessions(
        self,
        user_id: str,
        *,
        deadline: Optional[Deadline] = None,
    ) -> int:
        """
        Invalidate all sessions for a user (logout everywhere).

        Returns:
            Number of sessions removed
        """
        count = self._sessions.delete_for_user(user_id, deadline=deadline)
        self._log.info("Invalidated %d session(s) for user=%s", count, user_id)
        return count

    def delete_expired_sessions(self, *, deadline: Optional[Deadline] = None) -> int:
        """
        Remove expired sessions from the store.

        Validation already rejects them; this only reclaims space.

        Returns:
            Number of sessions cleaned up
        """
        count = self._sessions.delete_expired(self._now(), deadline=deadline)
        if count:
            self._log.info("Purged %d expired session(s)", count)
        return count

    def blank_cookie(self) -> SessionCookie:
        """Cookie that clears the session on the client."""
        return self._cookies.blank_cookie()
