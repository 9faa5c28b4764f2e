"""
Fixed-window rate limiting per client identifier.
Decides whether a request is admitted and reports the remaining quota.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from samehadaku.config import RateLimitConfig


@dataclass
class RateWindow:
    """Request count for one identifier inside the current window."""
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one admission check."""
    allowed: bool
    remaining: int
    reset_time: float
    limit: int


class RateLimiter:
    """Implements a fixed-window counter keyed by identifier (client address)."""

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        name: str = "general",
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize rate limiter with configuration.

        Args:
            config: RateLimitConfig instance, uses defaults if None
            name: Label used in stats
            clock: Returns the current time in seconds
        """
        self.config = config or RateLimitConfig()
        self.name = name
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str) -> RateLimitResult:
        """
        Count one request for identifier and decide whether to admit it.

        Args:
            identifier: Client key, typically the remote address

        Returns:
            RateLimitResult with allowed flag, remaining quota and reset time
        """
        limit = self.config.max_requests
        with self._lock:
            now = self._clock()
            window = self._windows.get(identifier)

            if window is None or now > window.reset_at:
                window = RateWindow(count=1, reset_at=now + self.config.window_seconds)
                self._windows[identifier] = window
                return RateLimitResult(
                    allowed=True,
                    remaining=limit - 1,
                    reset_time=window.reset_at,
                    limit=limit,
                )

            # Denied requests do not count against the window
            if window.count >= limit:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_time=window.reset_at,
                    limit=limit,
                )

            window.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=limit - window.count,
                reset_time=window.reset_at,
                limit=limit,
            )

    def cleanup(self) -> int:
        """Drop identifiers whose window has expired. Returns count removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, w in self._windows.items() if now > w.reset_at]
            for key in expired:
                del self._windows[key]
            return len(expired)

    def get_stats(self) -> dict:
        """
        Get rate limiter statistics.

        Returns:
            Dict with current state info
        """
        return {
            'name': self.name,
            'tracked_identifiers': len(self._windows),
            'max_requests': self.config.max_requests,
            'window_seconds': self.config.window_seconds,
        }

    def reset(self):
        """Forget every window."""
        with self._lock:
            self._windows.clear()
