"""In-memory fixed-window rate limiter for the relay.

Each caller identity (client IP by default) may make ``limit`` requests per
``window`` seconds.  The window opens on the caller's first request and the
counter resets when it expires.  Counting and checking happen under one lock,
so a request is either admitted and counted or refused, never both.

The clock is injectable so tests can step time deterministically.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable

__all__ = [
    "RateLimiter",
    "RateLimitInfo",
]


class _Window:
    """Request count for one caller inside one window."""

    __slots__ = ("started", "count")

    def __init__(self, started: float):
        self.started: float = started
        self.count: int = 0


class RateLimitInfo:
    """Rate limit state returned by ``check()``."""

    __slots__ = ("allowed", "limit", "remaining", "reset_after")

    def __init__(self, allowed: bool, limit: int, remaining: int, reset_after: float):
        self.allowed = allowed
        self.limit = limit
        self.remaining = remaining
        self.reset_after = reset_after

    def headers(self) -> dict[str, str]:
        """Return rate-limit response headers (RFC 6585 style)."""
        h: dict[str, str] = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_after)),
        }
        if not self.allowed:
            h["Retry-After"] = str(max(1, math.ceil(self.reset_after)))
        return h


class RateLimiter:
    """Fixed-window request counter keyed by caller identity.

    Parameters
    ----------
    limit : int
        Requests admitted per window.
    window : float
        Window length in seconds.
    clock : callable, optional
        Returns the current time in seconds. Defaults to ``time.monotonic``.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] | None = None,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.limit = limit
        self.window = window
        self._clock = clock or time.monotonic
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitInfo:
        """Count one request for *key* and return the resulting state."""
        with self._lock:
            now = self._clock()
            win = self._windows.get(key)
            if win is None or now - win.started >= self.window:
                win = _Window(now)
                self._windows[key] = win

            reset_after = max(0.0, win.started + self.window - now)
            if win.count >= self.limit:
                return RateLimitInfo(False, self.limit, 0, reset_after)

            win.count += 1
            return RateLimitInfo(True, self.limit, self.limit - win.count, reset_after)

    def cleanup(self) -> int:
        """Remove expired windows. Returns count removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, w in self._windows.items() if now - w.started >= self.window]
            for k in stale:
                del self._windows[k]
            return len(stale)

    def __len__(self) -> int:
        return len(self._windows)
