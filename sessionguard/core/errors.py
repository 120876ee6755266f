"""
Infrastructure Errors
=====================

Exceptions that are allowed to cross the authentication boundary.

Everything a user can cause (bad input, wrong password, stale cookie) is
returned as a value. Only a failing backend is raised, and its message is
always opaque: the underlying cause is kept in ``__cause__`` for logs.
"""

from __future__ import annotations

from typing import Final


UNAVAILABLE_MESSAGE: Final[str] = "service unavailable, try again later"


class StoreUnavailable(Exception):
    """Raised when the user directory or session store cannot be reached."""

    def __init__(self, message: str = UNAVAILABLE_MESSAGE) -> None:
        super().__init__(message)


class DeadlineExceeded(StoreUnavailable):
    """Raised when the caller's deadline expires before a store call."""
    pass


class DuplicateKeyError(Exception):
    """
    Raised by a store when an insert collides with an existing key.

    ``key`` names the unique column (``"email"`` or ``"session_id"``).
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Duplicate value for unique key '{key}'")
