"""
Job rate limiting.

Caps how many scan jobs a worker starts within a sliding time window,
which also bounds the load a worker puts on the sites it scans.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Deque

logger = logging.getLogger(__name__)


class JobRateLimiter:
    """
    Sliding-window limiter: at most ``max_jobs`` starts per ``window_seconds``.

    Usage:
        limiter = JobRateLimiter(max_jobs=5, window_seconds=60)
        await limiter.acquire()  # before starting each job
    """

    def __init__(self, max_jobs: int = 5, window_seconds: float = 60.0):
        if max_jobs < 1:
            raise ValueError("max_jobs must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_jobs = max_jobs
        self.window_seconds = window_seconds
        self._starts: Deque[float] = deque()
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """
        Claim a start slot, sleeping until the oldest start leaves the window.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        async with self._lock:
            while True:
                now = time.monotonic()
                self._expire(now)

                if len(self._starts) < self.max_jobs:
                    self._starts.append(now)
                    return waited

                delay = self._starts[0] + self.window_seconds - now
                logger.debug(
                    f"Job limit of {self.max_jobs} per {self.window_seconds:.0f}s reached, "
                    f"waiting {delay:.1f}s"
                )
                await asyncio.sleep(delay)
                waited += delay

    def _expire(self, now: float) -> None:
        while self._starts and self._starts[0] <= now - self.window_seconds:
            self._starts.popleft()

    @property
    def remaining(self) -> int:
        """Job starts still allowed in the current window."""
        self._expire(time.monotonic())
        return self.max_jobs - len(self._starts)
