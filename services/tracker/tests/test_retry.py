"""
Tests for RetryExecutor.

Coverage targets:
  - Retry fires on 429, 5xx and transport errors
  - Linear backoff: base * (attempt + 1), strictly increasing
  - Attempt budget is a hard cap; exhaustion returns None, never raises
  - Non-retryable statuses give up immediately
"""

from __future__ import annotations

import httpx
import pytest

from services.tracker.resilience.retry import RetryExecutor, is_retryable_status

_REQUEST = httpx.Request("GET", "https://weather.test/v1/forecast")


class _ScriptedSend:
    """Returns the scripted outcomes in order; exceptions are raised."""

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self) -> httpx.Response:
        outcome = self._outcomes[min(self.calls, len(self._outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, request=_REQUEST, json={})


@pytest.fixture
def retry(recorded_sleep):
    return RetryExecutor(max_attempts=5, base_delay_s=0.5, sleep=recorded_sleep)


class TestIsRetryableStatus:
    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable(self, status):
        assert is_retryable_status(status) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_not_retryable(self, status):
        assert is_retryable_status(status) is False


class TestRetryExecutor:
    async def test_success_first_try(self, retry, recorded_sleep):
        send = _ScriptedSend(200)

        resp = await retry.run(send)

        assert resp.status_code == 200
        assert send.calls == 1
        assert recorded_sleep.calls == []

    async def test_persistent_429_gives_up_after_five_attempts(self, retry, recorded_sleep):
        send = _ScriptedSend(429)

        resp = await retry.run(send)

        assert resp is None
        assert send.calls == 5
        assert recorded_sleep.calls == [0.5, 1.0, 1.5, 2.0]
        assert all(a < b for a, b in zip(recorded_sleep.calls, recorded_sleep.calls[1:]))

    async def test_recovers_after_server_errors(self, retry, recorded_sleep):
        send = _ScriptedSend(503, 500, 200)

        resp = await retry.run(send)

        assert resp.status_code == 200
        assert send.calls == 3
        assert recorded_sleep.calls == [0.5, 1.0]

    async def test_network_errors_are_retried(self, retry, recorded_sleep):
        send = _ScriptedSend(
            httpx.ConnectError("refused", request=_REQUEST),
            httpx.ReadTimeout("slow", request=_REQUEST),
            200,
        )

        resp = await retry.run(send)

        assert resp.status_code == 200
        assert send.calls == 3

    async def test_persistent_network_error_returns_none(self, retry):
        send = _ScriptedSend(httpx.ConnectError("refused", request=_REQUEST))

        assert await retry.run(send) is None
        assert send.calls == 5

    async def test_client_error_is_not_retried(self, retry, recorded_sleep):
        send = _ScriptedSend(400)

        assert await retry.run(send) is None
        assert send.calls == 1
        assert recorded_sleep.calls == []

    async def test_single_attempt_budget(self, recorded_sleep):
        send = _ScriptedSend(500)
        retry = RetryExecutor(max_attempts=1, base_delay_s=0.5, sleep=recorded_sleep)

        assert await retry.run(send) is None
        assert send.calls == 1
        assert recorded_sleep.calls == []

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            RetryExecutor(max_attempts=0)
