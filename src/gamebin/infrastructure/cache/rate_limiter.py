"""Call counter enforcing the hourly remote call ceiling.

A fixed window: the counter resets once more than ``window_seconds`` have
passed since the window opened. The limiter is consulted only for calls that
actually reach the remote store, so cache hits are free.
"""

import time
from collections.abc import Callable

from gamebin.core.logging import get_logger
from gamebin.domain.exceptions import RateLimitExceeded

logger = get_logger(__name__)


class RateLimiter:
    """Fixed-window counter for remote calls."""

    def __init__(
        self,
        max_calls: int = 200,
        window_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the limiter.

        Args:
            max_calls: Calls allowed per window.
            window_seconds: Window length in seconds (default: 1 hour).
            clock: Time source returning epoch seconds.
        """
        if max_calls <= 0:
            raise ValueError("max_calls must be positive")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._count = 0
        self._window_start = clock()

    def _roll_window(self) -> None:
        now = self._clock()
        if now - self._window_start > self.window_seconds:
            self._count = 0
            self._window_start = now

    def acquire(self) -> None:
        """Count one remote call.

        Raises:
            RateLimitExceeded: If the ceiling is reached for the current window.
        """
        self._roll_window()
        if self._count >= self.max_calls:
            retry_after = max(0.0, self._window_start + self.window_seconds - self._clock())
            logger.warning(
                "Remote call ceiling reached",
                limit=self.max_calls,
                retry_after=round(retry_after, 1),
            )
            raise RateLimitExceeded(self.max_calls, retry_after)
        self._count += 1

    @property
    def used(self) -> int:
        self._roll_window()
        return self._count

    @property
    def remaining(self) -> int:
        return self.max_calls - self.used

    def reset(self) -> None:
        self._count = 0
        self._window_start = self._clock()
