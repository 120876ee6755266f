"""
Login Throttling
================

Limits failed login attempts per account key.

Counters are keyed by the normalized e-mail the client submitted, known
or not, so throttling itself reveals nothing about which accounts exist.
After ``max_attempts`` failures, each within ``lockout_seconds`` of the
previous one, the key is locked for ``lockout_seconds``. A success, an
expired lockout or a quiet gap longer than ``lockout_seconds`` resets it.

State lives in process memory and holds only counters. Deployments with
several processes get per-process limits.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Final, Optional

from sessionguard.core.config import ThrottleConfig


# Upper bound on tracked keys before stale entries are swept
MAX_TRACKED_KEYS: Final[int] = 10_000


@dataclass
class _Attempts:
    failures: int = 0
    locked_until: float = 0.0
    last_failure: float = 0.0


class LoginThrottle:
    """
    Failed-login counter with temporary lockout.

    Usage:
        throttle = LoginThrottle(max_attempts=5, lockout_seconds=300)

        retry_after = throttle.retry_after(email)
        if retry_after:
            reject(retry_after)
        elif login_ok:
            throttle.reset(email)
        else:
            throttle.record_failure(email)
    """

    __slots__ = ("_max_attempts", "_lockout_seconds", "_clock", "_entries", "_lock")

    def __init__(
        self,
        max_attempts: int = 5,
        lockout_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if lockout_seconds < 1:
            raise ValueError("lockout_seconds must be at least 1")
        self._max_attempts = max_attempts
        self._lockout_seconds = lockout_seconds
        self._clock = clock
        self._entries: Dict[str, _Attempts] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ThrottleConfig) -> Optional[LoginThrottle]:
        """Build a throttle, or None when throttling is disabled."""
        if not config.enabled:
            return None
        return cls(max_attempts=config.max_attempts, lockout_seconds=config.lockout_seconds)

    def retry_after(self, key: str) -> int:
        """Seconds until ``key`` may try again; 0 if not locked."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.locked_until <= now:
                if entry is not None and entry.locked_until:
                    # Lockout served: start over
                    del self._entries[key]
                return 0
            return max(1, math.ceil(entry.locked_until - now))

    def record_failure(self, key: str) -> None:
        """Count a failed attempt; lock the key once the limit is reached."""
        now = self._clock()
        with self._lock:
            if len(self._entries) >= MAX_TRACKED_KEYS:
                self._sweep(now)
            entry = self._entries.setdefault(key, _Attempts())
            if entry.failures and now - entry.last_failure > self._lockout_seconds:
                # Quiet for a full lockout period: old failures no longer count
                entry.failures = 0
            entry.failures += 1
            entry.last_failure = now
            if entry.failures >= self._max_attempts:
                entry.locked_until = now + self._lockout_seconds

    def reset(self, key: str) -> None:
        """Forget failures for ``key`` after a successful login."""
        with self._lock:
            self._entries.pop(key, None)

    def _sweep(self, now: float) -> None:
        """Drop entries that are neither locked nor recently active."""
        horizon = now - self._lockout_seconds
        stale = [
            key for key, entry in self._entries.items()
            if entry.locked_until <= now and entry.last_failure <= horizon
        ]
        for key in stale:
            del self._entries[key]
