"""Client-side rate limiting for Zotero Web API requests."""
import logging
import threading
import time
from collections import deque
from typing import Callable, Deque

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window limiter owned by one API client.

    Used as a context manager around each request. Threads sharing a client
    (the Flask server runs threaded) share its window; the lock is held while
    waiting, so queued requests go out in arrival order.
    """

    def __init__(
        self,
        max_calls: int,
        period: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            max_calls: Requests allowed per window
            period: Window length in seconds
            clock: Monotonic time source
            sleep: Blocking wait, called with the number of seconds to wait
        """
        if max_calls < 1 or period <= 0:
            raise ValueError("max_calls must be >= 1 and period > 0")
        self.max_calls = max_calls
        self.period = period
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._calls: Deque[float] = deque()

    def __enter__(self) -> 'RateLimiter':
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    @property
    def recent_calls(self) -> int:
        """Number of requests inside the current window."""
        with self._lock:
            self._expire(self._clock())
            return len(self._calls)

    def acquire(self) -> None:
        """Block until another request fits in the window, then record it."""
        with self._lock:
            now = self._clock()
            self._expire(now)
            if len(self._calls) >= self.max_calls:
                wait = self._calls[0] + self.period - now
                if wait > 0:
                    logger.debug(f"Rate limit reached, waiting {wait:.2f} seconds")
                    self._sleep(wait)
                    now = self._clock()
                self._expire(now)
            self._calls.append(now)

    def _expire(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period:
            self._calls.popleft()
