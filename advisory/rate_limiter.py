"""
Rate limiter for advisory calls.

This module provides rate limiting functionality to ensure
we don't exceed the oracle's request quota.
"""

import threading
import time
from collections import deque
from typing import Callable, Deque


class RateLimiter:
    """
    Sliding-window rate limiter.

    Tracks the timestamps of recent calls and sleeps when another call
    would exceed ``max_calls`` within ``period`` seconds.
    """

    def __init__(
        self,
        max_calls: int,
        period: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            max_calls: Maximum calls allowed per window
            period: Window length in seconds
            clock: Time source, injectable for tests
            sleep: Sleep function, injectable for tests
        """
        if max_calls <= 0:
            raise ValueError("max_calls must be positive")
        if period <= 0:
            raise ValueError("period must be positive")

        self.max_calls = max_calls
        self.period = period
        self._clock = clock
        self._sleep = sleep
        self._calls: Deque[float] = deque()
        self._lock = threading.Lock()

    def wait(self) -> float:
        """
        Wait if necessary before making a call.

        Returns:
            Seconds slept (0.0 when no wait was needed)
        """
        with self._lock:
            current_time = self._clock()
            self._evict(current_time)

            waited = 0.0
            if len(self._calls) >= self.max_calls:
                wait_time = self._calls[0] + self.period - current_time
                if wait_time > 0:
                    self._sleep(wait_time)
                    waited = wait_time
                    current_time = self._clock()
                    self._evict(current_time)

            self._calls.append(current_time)
            return waited

    def _evict(self, current_time: float) -> None:
        """Remove calls older than the window"""
        while self._calls and self._calls[0] <= current_time - self.period:
            self._calls.popleft()
