"""
Session Cookies
===============

The wire representation of a session.

A SessionCookie is a plain value: the core never writes HTTP responses.
Callers place ``name``/``value``/``attributes`` on their response, or use
``serialize()`` to get a ready ``Set-Cookie`` header value.

Cookie Attributes:
- HttpOnly always
- Secure outside local development
- SameSite=Lax, Path=/
- Max-Age=<ttl>, or no Max-Age for browser-session cookies
- Clearing cookies carry an empty value and Max-Age=0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from werkzeug.http import dump_cookie

from sessionguard.core.config import AuthConfig


@dataclass(frozen=True, slots=True)
class CookieAttributes:
    """Attributes sent alongside the cookie value."""
    http_only: bool = True
    secure: bool = True
    same_site: str = "Lax"
    path: str = "/"
    domain: Optional[str] = None
    max_age: Optional[int] = None  # None -> session cookie


@dataclass(frozen=True, slots=True)
class SessionCookie:
    """
    A cookie carrying a session id (or clearing one).

    Note: the value is a bearer credential; repr shows only a prefix.
    """
    name: str
    value: str
    attributes: CookieAttributes

    @property
    def is_blank(self) -> bool:
        """True for a cookie that instructs the client to drop the session."""
        return self.value == "" and self.attributes.max_age == 0

    def serialize(self) -> str:
        """Render as a ``Set-Cookie`` header value."""
        attrs = self.attributes
        return dump_cookie(
            self.name,
            self.value,
            max_age=attrs.max_age,
            path=attrs.path,
            domain=attrs.domain,
            secure=attrs.secure,
            httponly=attrs.http_only,
            samesite=attrs.same_site,
        )

    def __repr__(self) -> str:
        """Safe representation without the full session id."""
        shown = f"{self.value[:8]}..." if self.value else ""
        return (
            f"SessionCookie(name={self.name!r}, value={shown!r}, "
            f"max_age={self.attributes.max_age})"
        )


class CookieFactory:
    """
    Builds session cookies with consistent attributes.

    Owned by the SessionManager; nothing else constructs cookies.
    """

    __slots__ = ("_name", "_secure", "_domain", "_max_age")

    def __init__(
        self,
        name: str,
        secure: bool = True,
        domain: Optional[str] = None,
        max_age: Optional[int] = None,
    ) -> None:
        self._name = name
        self._secure = secure
        self._domain = domain
        self._max_age = max_age

    @classmethod
    def from_config(cls, config: AuthConfig) -> CookieFactory:
        session = config.session
        return cls(
            name=session.cookie_name,
            secure=config.cookie_secure,
            domain=session.cookie_domain,
            max_age=session.ttl_seconds if session.persistent else None,
        )

    @property
    def name(self) -> str:
        return self._name

    def _attributes(self, max_age: Optional[int]) -> CookieAttributes:
        return CookieAttributes(
            secure=self._secure,
            domain=self._domain,
            max_age=max_age,
        )

    def session_cookie(self, session_id: str) -> SessionCookie:
        """Cookie carrying a live session id."""
        if not session_id:
            raise ValueError("Session id cannot be empty")
        return SessionCookie(self._name, session_id, self._attributes(self._max_age))

    def blank_cookie(self) -> SessionCookie:
        """Cookie that clears the session on the client."""
        return SessionCookie(self._name, "", self._attributes(0))
