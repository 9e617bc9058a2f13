"""
Fixed-window rate limiter for outbound provider calls.

One acquire() == one remote request, regardless of how many cells that
request carries. When the window's budget is spent, acquire() sleeps until
the window ends, then opens a fresh window and proceeds.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """
    Usage:
        limiter = FixedWindowRateLimiter(max_per_window=500, window_s=60.0)
        await limiter.acquire()
        resp = await http.get(...)

    clock/sleep are injectable so tests can drive a simulated clock.
    """

    def __init__(
        self,
        max_per_window: int,
        window_s: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_per_window < 1:
            raise ValueError("max_per_window must be >= 1")
        if window_s <= 0:
            raise ValueError("window_s must be > 0")

        self.max_per_window = max_per_window
        self.window_s = window_s
        self._clock = clock
        self._sleep = sleep
        self.window_start = clock()
        self.requests_in_window = 0
        self._lock = asyncio.Lock()

    @property
    def remaining(self) -> int:
        return max(0, self.max_per_window - self.requests_in_window)

    async def acquire(self) -> float:
        """
        Consume one unit. Returns the number of seconds spent waiting
        (0.0 when capacity was available).
        """
        async with self._lock:
            waited = 0.0
            elapsed = self._clock() - self.window_start

            if elapsed >= self.window_s:
                self._reset()
            elif self.requests_in_window >= self.max_per_window:
                waited = self.window_s - elapsed
                logger.warning(
                    "Hit %d requests in current %.0fs window, waiting %.2fs",
                    self.max_per_window,
                    self.window_s,
                    waited,
                )
                await self._sleep(waited)
                self._reset()

            self.requests_in_window += 1
            return waited

    def _reset(self) -> None:
        self.window_start = self._clock()
        self.requests_in_window = 0
