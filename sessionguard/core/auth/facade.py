"""
Authentication Facade
=====================

The single entry point request handlers call.

Operations:
- register: validate, hash, create the user, start a session
- authenticate: verify credentials, start a session
- verify_request: resolve a cookie value to a user (route guard)
- logout / logout_everywhere: end sessions, return a clearing cookie

Security Features:
- Enumeration resistance: unknown e-mail and wrong password return the
  same AuthenticationError after the same amount of hashing work
- Duplicate e-mail at registration is reported like any validation error
- Transparent rehash of outdated password hashes on login
- Optional per-account login throttling

Error Model:
    Validation, credential and throttling failures are returned inside
    AuthResult. StoreUnavailable is the only exception that escapes.
"""

from __future__ import annotations

import logging
from typing import Optional

from sessionguard.core.auth.argon2_auth import Argon2Hasher
from sessionguard.core.auth.cookies import CookieFactory, SessionCookie
from sessionguard.core.auth.results import (
    AuthenticationError,
    AuthResult,
    FieldError,
    LoginThrottled,
    ValidationError,
)
from sessionguard.core.auth.session_control import SessionManager, SessionValidation
from sessionguard.core.auth.throttle import LoginThrottle
from sessionguard.core.config import AuthConfig
from sessionguard.core.deadline import Deadline
from sessionguard.core.errors import DuplicateKeyError, StoreUnavailable
from sessionguard.db.base import SessionStore, UserDirectory
from sessionguard.utils.validators import normalize_email, validate_registration


class Authenticator:
    """
    Cookie-session authentication over a user directory and session store.

    Usage:
        auth = Authenticator(SQLiteUserDirectory(db), SQLiteSessionStore(db))

        result = auth.register("alice@example.com", "Passw0rd!")
        if result.ok:
            set_cookie(result.cookie.serialize())
        else:
            show(result.error.to_dict())

        check = auth.verify_request(request_cookie_value)
        if check.cookie is not None:
            set_cookie(check.cookie.serialize())
        if not check.authenticated:
            redirect_to_login()

        set_cookie(auth.logout(request_cookie_value).serialize())

    Every method may block on store I/O, and register/authenticate run a
    deliberately slow KDF; call them from worker threads.
    """

    __slots__ = ("_users", "_config", "_hasher", "_sessions", "_throttle", "_log")

    def __init__(
        self,
        users: UserDirectory,
        sessions: SessionStore,
        *,
        config: Optional[AuthConfig] = None,
        hasher: Optional[Argon2Hasher] = None,
        throttle: Optional[LoginThrottle] = None,
    ) -> None:
        """
        Initialize the authenticator.

        Args:
            users: User directory
            sessions: Session store
            config: Configuration (default: AuthConfig.get_instance())
            hasher: Password hasher (default: built from config.hashing)
            throttle: Login throttle (default: built from config.throttle)
        """
        self._config = config or AuthConfig.get_instance()
        self._users = users
        self._hasher = hasher or Argon2Hasher.from_config(self._config.hashing)
        self._sessions = SessionManager(
            sessions,
            users,
            self._config.session,
            CookieFactory.from_config(self._config),
        )
        self._throttle = throttle if throttle is not None else LoginThrottle.from_config(
            self._config.throttle
        )
        self._log = logging.getLogger("sessionguard.auth")

    @property
    def sessions(self) -> SessionManager:
        """The underlying session manager."""
        return self._sessions

    @property
    def hasher(self) -> Argon2Hasher:
        return self._hasher

    def register(
        self,
        email: str,
        password: str,
        *,
        deadline: Optional[Deadline] = None,
    ) -> AuthResult:
        """
        Create an account and log it in.

        Args:
            email: E-mail address (normalized before storing)
            password: Plaintext password
            deadline: Optional request deadline

        Returns:
            AuthResult with user_id, session and cookie, or a ValidationError
            listing every field problem

        Raises:
            StoreUnavailable: If a store fails; a user inserted before
                the failure is deleted again
        """
        problems = validate_registration(email, password, self._config.password)
        if problems:
            return AuthResult.failure(ValidationError(tuple(problems)))

        normalized = normalize_email(email)
        password_hash = self._hasher.hash(password).encoded

        try:
            user_id = self._users.insert(normalized, password_hash, deadline=deadline)
        except DuplicateKeyError:
            self._log.info("Registration rejected: e-mail already in use")
            return AuthResult.failure(
                ValidationError((FieldError("email", "already in use"),))
            )

        try:
            session, cookie = self._sessions.create_session(user_id, deadline=deadline)
        except StoreUnavailable:
            # Registration is all or nothing
            self._discard_user(user_id)
            raise

        self._log.info("User registered: %s", user_id)
        return AuthResult.success(user_id, session, cookie)

    def _discard_user(self, user_id: str) -> None:
        """Undo a registration whose session could not be created."""
        try:
            self._users.delete(user_id)
        except StoreUnavailable:
            self._log.error("Could not roll back registration for user=%s", user_id)
        else:
            self._log.warning("Registration rolled back for user=%s", user_id)

    def authenticate(
        self,
        email: str,
        password: str,
        *,
        deadline: Optional[Deadline] = None,
    ) -> AuthResult:
        """
        Verify credentials and start a session.

        Args:
            email: E-mail address as submitted
            password: Plaintext password
            deadline: Optional request deadline

        Returns:
            AuthResult with user_id, session and cookie; or
            AuthenticationError (generic) / LoginThrottled

        Raises:
            StoreUnavailable: If a store fails
        """
        key = normalize_email(email)

        if self._throttle is not None:
            retry_after = self._throttle.retry_after(key)
            if retry_after:
                self._log.warning("Login throttled")
                return AuthResult.failure(LoginThrottled(retry_after=retry_after))

        user = self._users.find_by_email(key, deadline=deadline) if key else None

        if user is None:
            # Constant-time behavior: verify against a dummy hash anyway
            self._hasher.verify(password or "", self._hasher.dummy_hash())
            return self._reject(key)

        if not self._hasher.verify(password, user.password_hash):
            return self._reject(key)

        if self._throttle is not None:
            self._throttle.reset(key)

        if self._hasher.needs_rehash(user.password_hash):
            self._users.update_password_hash(
                user.id, self._hasher.hash(password).encoded, deadline=deadline
            )
            self._log.info("Password hash upgraded for user=%s", user.id)

        session, cookie = self._sessions.create_session(user.id, deadline=deadline)
        self._log.info("Login succeeded for user=%s", user.id)
        return AuthResult.success(user.id, session, cookie)

    def _reject(self, key: str) -> AuthResult:
        if self._throttle is not None and key:
            self._throttle.record_failure(key)
        self._log.info("Login failed")
        return AuthResult.failure(AuthenticationError())

    def verify_request(
        self,
        raw_cookie_value: Optional[str],
        *,
        deadline: Optional[Deadline] = None,
    ) -> SessionValidation:
        """
        Route guard: resolve a session cookie value to its user.

        Returns an unauthenticated SessionValidation for missing, unknown,
        expired or orphaned sessions; callers decide how to respond.

        Raises:
            StoreUnavailable: If a store fails (never treat as logged out)
        """
        return self._sessions.validate_session(raw_cookie_value, deadline=deadline)

    def logout(
        self,
        raw_cookie_value: Optional[str],
        *,
        deadline: Optional[Deadline] = None,
    ) -> SessionCookie:
        """End the session, if any. Always returns the clearing cookie."""
        self._sessions.invalidate_session(raw_cookie_value, deadline=deadline)
        return self._sessions.blank_cookie()

    def logout_everywhere(
        self,
        user_id: str,
        *,
        deadline: Optional[Deadline] = None,
    ) -> SessionCookie:
        """End every session of a user. Returns the clearing cookie."""
        self._sessions.invalidate_user_sessions(user_id, deadline=deadline)
        return self._sessions.blank_cookie()
