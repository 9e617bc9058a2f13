"""
Bounded retry for a single outbound HTTP call.

Retryable: HTTP 429, HTTP 5xx, and transport-level errors (connect/read
timeouts, resets). Delay before retry n (0-based) is base_delay_s * (n + 1),
so with the defaults: 0.5s, 1.0s, 1.5s, 2.0s across 5 attempts.

Exhausting the budget is not an error: run() returns None and the caller
treats it as "no data this round".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class RetryExecutor:
    """
    Usage:
        retry = RetryExecutor(max_attempts=5, base_delay_s=0.5)
        resp = await retry.run(lambda: http.get(url, params=params), label="batch(50)")
        if resp is None:
            ...  # gave up
    """

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay_s: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay_s = base_delay_s
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_s * (attempt + 1)

    async def run(
        self,
        send: Callable[[], Awaitable[httpx.Response]],
        label: str = "request",
    ) -> httpx.Response | None:
        """
        Call send() until it yields a 2xx response or the budget runs out.

        Returns the successful response, or None on exhaustion or on a
        non-retryable status.
        """
        for attempt in range(self.max_attempts):
            is_last = attempt == self.max_attempts - 1
            try:
                resp = await send()
            except httpx.RequestError as exc:
                if is_last:
                    logger.error("%s: network error after %d attempts: %s", label, self.max_attempts, exc)
                    return None
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s: network error (attempt %d/%d), retrying in %.2fs: %s",
                    label, attempt + 1, self.max_attempts, delay, exc,
                )
                await self._sleep(delay)
                continue

            if resp.is_success:
                return resp

            if not is_retryable_status(resp.status_code):
                logger.error("%s: HTTP %d, not retrying", label, resp.status_code)
                return None

            if is_last:
                logger.error("%s: HTTP %d after %d attempts, giving up", label, resp.status_code, self.max_attempts)
                return None

            delay = self.delay_for(attempt)
            logger.warning(
                "%s: HTTP %d (attempt %d/%d), retrying in %.2fs",
                label, resp.status_code, attempt + 1, self.max_attempts, delay,
            )
            await self._sleep(delay)

        return None
