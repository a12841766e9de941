"""Rolling frames-per-second counter."""

import threading
import time
from collections import deque
from typing import Callable, Deque


class RateCounter:
    """Counts events over a sliding window."""

    def __init__(self, window: float = 1.0, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            window: Window length in seconds
            clock: Monotonic clock returning seconds
        """
        self.window = window
        self._clock = clock
        self._events: Deque[float] = deque()
        self._lock = threading.Lock()

    def _expire(self, now: float) -> None:
        while self._events and now - self._events[0] >= self.window:
            self._events.popleft()

    def incr(self, count: int = 1) -> None:
        with self._lock:
            now = self._clock()
            self._expire(now)
            self._events.extend([now] * count)

    def rate(self) -> int:
        """Number of events within the window ending now."""
        with self._lock:
            self._expire(self._clock())
            return len(self._events)
