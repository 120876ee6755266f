"""
Authentication Results
======================

Typed outcomes returned (never raised) by the Authenticator.

Validation errors are specific and field-scoped. Credential errors are
deliberately generic: an unknown e-mail and a wrong password produce the
same object. None of these carry internal diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Final, Optional, Union

from sessionguard.core.auth.cookies import SessionCookie
from sessionguard.utils.validators import FieldError

if TYPE_CHECKING:
    from sessionguard.core.auth.session_control import Session


GENERIC_AUTH_MESSAGE: Final[str] = "could not authenticate, check your credentials"
THROTTLED_MESSAGE: Final[str] = "too many attempts, try again later"


@dataclass(frozen=True, slots=True)
class ValidationError:
    """One or more field problems, all reported at once."""
    kind: ClassVar[str] = "validation"

    errors: tuple[FieldError, ...]

    def fields(self) -> set[str]:
        return {e.field for e in self.errors}

    def messages_for(self, field: str) -> list[str]:
        return [e.message for e in self.errors if e.field == field]

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.kind,
            "fields": [{"field": e.field, "message": e.message} for e in self.errors],
        }


@dataclass(frozen=True, slots=True)
class AuthenticationError:
    """Login failed. Identical for unknown accounts and wrong passwords."""
    kind: ClassVar[str] = "authentication"

    message: str = GENERIC_AUTH_MESSAGE

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message}


@dataclass(frozen=True, slots=True)
class LoginThrottled:
    """Too many failed logins for this account; retry after ``retry_after`` seconds."""
    kind: ClassVar[str] = "throttled"

    retry_after: int
    message: str = THROTTLED_MESSAGE

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, "retry_after": self.retry_after}


AuthFailure = Union[ValidationError, AuthenticationError, LoginThrottled]


@dataclass(frozen=True, slots=True)
class AuthResult:
    """
    Outcome of register/authenticate.

    Exactly one of (user_id + session + cookie) or error is set.
    """
    user_id: Optional[str] = None
    session: Optional[Session] = None
    cookie: Optional[SessionCookie] = None
    error: Optional[AuthFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, user_id: str, session: Session, cookie: SessionCookie) -> AuthResult:
        return cls(user_id=user_id, session=session, cookie=cookie)

    @classmethod
    def failure(cls, error: AuthFailure) -> AuthResult:
        return cls(error=error)
