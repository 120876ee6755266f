"""
sessionguard Authentication Module
==================================

Provides cookie-based session authentication with:
- Argon2id password hashing
- Opaque, store-backed session ids
- Sliding session expiration
- Enumeration-resistant login
- Optional login throttling

Security Properties:
- Memory-hard password hashing
- Constant-time verification
- Store is the sole source of session validity
- Only infrastructure failures are raised
"""

from sessionguard.core.auth.argon2_auth import (
    Argon2Hasher,
    InvalidInput,
    hash_password,
    verify_password,
)
from sessionguard.core.auth.cookies import (
    CookieAttributes,
    CookieFactory,
    SessionCookie,
)
from sessionguard.core.auth.results import (
    AuthenticationError,
    AuthResult,
    FieldError,
    LoginThrottled,
    ValidationError,
)
from sessionguard.core.auth.session_control import (
    Session,
    SessionManager,
    SessionValidation,
)
from sessionguard.core.auth.throttle import LoginThrottle
from sessionguard.core.auth.facade import Authenticator

__all__ = [
    "Argon2Hasher",
    "InvalidInput",
    "hash_password",
    "verify_password",
    "CookieAttributes",
    "CookieFactory",
    "SessionCookie",
    "AuthenticationError",
    "AuthResult",
    "FieldError",
    "LoginThrottled",
    "ValidationError",
    "Session",
    "SessionManager",
    "SessionValidation",
    "LoginThrottle",
    "Authenticator",
]
