"""Fixed-window request quota for rate-limited providers."""

import math
import time

from collections.abc import Callable

from src.helpers.constants import DEFAULT_RATE_LIMIT, RATE_LIMIT_WINDOW
from src.helpers.errors import RateLimited


class FixedWindowRateLimiter:
    """Allow at most ``limit`` acquisitions per ``window`` seconds.

    State is a counter plus the start of the current window. ``acquire`` is
    synchronous, so check-and-increment cannot interleave with other
    coroutines on the event loop.
    """

    def __init__(
        self,
        limit: int = DEFAULT_RATE_LIMIT,
        window: float = RATE_LIMIT_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize limiter.

        Args:
            limit: Calls allowed per window
            window: Window length in seconds
            clock: Monotonic time source in seconds

        Raises:
            ValueError: If limit or window is not positive
        """
        if limit <= 0:
            msg = "Rate limit must be positive"
            raise ValueError(msg)
        if window <= 0:
            msg = "Rate limit window must be positive"
            raise ValueError(msg)

        self.limit = limit
        self.window = window
        self._clock = clock
        self.count = 0
        self.window_start = clock()

    def acquire(self) -> None:
        """Consume one call from the current window.

        Raises:
            RateLimited: If the window is full; ``retry_after_ms`` tells how
                long until it resets
        """
        now = self._clock()
        elapsed = now - self.window_start
        if elapsed >= self.window:
            self.count = 0
            self.window_start = now
            elapsed = 0.0

        if self.count >= self.limit:
            retry_after_ms = math.ceil((self.window - elapsed) * 1000)
            raise RateLimited(retry_after_ms)

        self.count += 1

    def reset(self) -> None:
        """Start a fresh window."""
        self.count = 0
        self.window_start = self._clock()


__all__ = ["FixedWindowRateLimiter"]
