"""
Request Deadlines
=================

A caller-supplied time budget that travels with every store call.

Stores call ``check()`` before touching the backend and may use
``remaining()`` to bound lock waits, so an expired request never starts
a write it cannot finish.
"""

from __future__ import annotations

import time
from typing import Final, Optional

from sessionguard.core.errors import DeadlineExceeded


# Upper bound used when no deadline is given but a finite wait is needed
DEFAULT_WAIT_SECONDS: Final[float] = 5.0


class Deadline:
    """
    Absolute point in time (monotonic clock) after which work must stop.

    Usage:
        deadline = Deadline.after(2.5)
        deadline.check()            # raises DeadlineExceeded once expired
        timeout = deadline.remaining()
    """

    __slots__ = ("_expires_at",)

    def __init__(self, expires_at: float) -> None:
        self._expires_at = expires_at

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        """Create a deadline ``seconds`` from now."""
        if seconds < 0:
            raise ValueError("Deadline cannot be in the past")
        return cls(time.monotonic() + seconds)

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self._expires_at - time.monotonic())

    def check(self) -> None:
        """Raise DeadlineExceeded if the deadline has passed."""
        if self.expired:
            raise DeadlineExceeded()

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.3f}s)"


def check_deadline(deadline: Optional[Deadline]) -> None:
    """Check an optional deadline."""
    if deadline is not None:
        deadline.check()


def wait_budget(deadline: Optional[Deadline], default: float = DEFAULT_WAIT_SECONDS) -> float:
    """Seconds a backend may block for, bounded by the deadline if one is set."""
    if deadline is None:
        return default
    return min(default, deadline.remaining())
