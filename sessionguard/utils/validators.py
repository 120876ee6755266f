"""
Validation Utilities
====================

Input validation for registration, reporting every problem at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from sessionguard.core.config import PasswordPolicy


MAX_EMAIL_LENGTH: Final[int] = 254  # RFC 5321 path limit


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single problem with one input field."""
    field: str
    message: str


def normalize_email(email: str) -> str:
    """Canonical comparison key for an e-mail address."""
    return (email or "").strip().lower()


def validate_email(email: str) -> list[FieldError]:
    """
    Check an e-mail address has the shape ``local@domain``.

    Args:
        email: Address as submitted (normalized before checking)

    Returns:
        Problems found; empty when valid
    """
    errors: list[FieldError] = []
    value = normalize_email(email)

    if not value:
        return [FieldError("email", "is required")]

    local, _, domain = value.partition("@")
    if value.count("@") != 1 or not local or not domain:
        errors.append(FieldError("email", "must be a valid e-mail address"))
    elif any(c.isspace() for c in value):
        errors.append(FieldError("email", "must not contain spaces"))

    if len(value) > MAX_EMAIL_LENGTH:
        errors.append(FieldError("email", f"must be at most {MAX_EMAIL_LENGTH} characters"))

    return errors


def validate_password(password: str, policy: PasswordPolicy) -> list[FieldError]:
    """
    Check a password against the length policy.

    Args:
        password: Plaintext password
        policy: Length limits

    Returns:
        Problems found; empty when valid
    """
    errors: list[FieldError] = []

    if not isinstance(password, str) or not password:
        return [FieldError("password", "is required")]

    if len(password) < policy.min_length:
        errors.append(
            FieldError("password", f"must be at least {policy.min_length} characters")
        )

    if len(password) > policy.max_length:
        errors.append(
            FieldError("password", f"must be at most {policy.max_length} characters")
        )

    # Null bytes and lone surrogates cannot be hashed safely
    if "\x00" in password or not _is_utf8_encodable(password):
        errors.append(FieldError("password", "contains invalid characters"))

    return errors


def _is_utf8_encodable(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def validate_registration(email: str, password: str, policy: PasswordPolicy) -> list[FieldError]:
    """Validate both registration fields, accumulating all problems."""
    return validate_email(email) + validate_password(password, policy)
