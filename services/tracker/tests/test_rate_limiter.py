"""
Tests for FixedWindowRateLimiter, driven by a simulated clock.
"""

from __future__ import annotations

import pytest

from services.tracker.resilience.rate_limiter import FixedWindowRateLimiter


@pytest.fixture
def limiter(clock, recorded_sleep):
    return FixedWindowRateLimiter(max_per_window=3, window_s=60.0, clock=clock, sleep=recorded_sleep)


class TestFixedWindowRateLimiter:
    async def test_grants_up_to_cap_without_waiting(self, limiter, recorded_sleep):
        for _ in range(3):
            assert await limiter.acquire() == 0.0

        assert recorded_sleep.calls == []
        assert limiter.requests_in_window == 3
        assert limiter.remaining == 0

    async def test_exhausted_window_suspends_for_remainder(self, limiter, clock, recorded_sleep):
        for _ in range(3):
            await limiter.acquire()
        clock.advance(20.0)

        waited = await limiter.acquire()

        assert waited == pytest.approx(40.0)
        assert recorded_sleep.calls == [pytest.approx(40.0)]
        # fresh window opened after the wait, and this call counted in it
        assert limiter.window_start == clock()
        assert limiter.requests_in_window == 1

    async def test_elapsed_window_resets_immediately(self, limiter, clock, recorded_sleep):
        for _ in range(3):
            await limiter.acquire()
        clock.advance(60.0)

        assert await limiter.acquire() == 0.0
        assert recorded_sleep.calls == []
        assert limiter.requests_in_window == 1
        assert limiter.window_start == clock()

    async def test_partial_window_resets_without_wait(self, limiter, clock, recorded_sleep):
        await limiter.acquire()
        clock.advance(61.0)

        await limiter.acquire()

        assert recorded_sleep.calls == []
        assert limiter.requests_in_window == 1

    async def test_each_acquire_counts_exactly_one(self, clock, recorded_sleep):
        limiter = FixedWindowRateLimiter(max_per_window=500, window_s=60.0, clock=clock, sleep=recorded_sleep)
        for _ in range(7):
            await limiter.acquire()
        assert limiter.requests_in_window == 7

    async def test_sustained_load_waits_once_per_window(self, limiter, recorded_sleep):
        for _ in range(9):
            await limiter.acquire()
        assert len(recorded_sleep.calls) == 2

    @pytest.mark.parametrize("kwargs", [{"max_per_window": 0, "window_s": 60.0}, {"max_per_window": 1, "window_s": 0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(**kwargs)
