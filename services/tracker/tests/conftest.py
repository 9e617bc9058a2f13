"""
Shared test fixtures for the balloon tracker test suite.

Provides:
- FakeClock / RecordingSleep: deterministic time for limiter + retry tests
- FakeRedis: async Redis double honouring EX expiry against a FakeClock
- http_client_for(): httpx.AsyncClient over httpx.MockTransport
- make_snapshot_body() / make_current_weather(): upstream payload factories
- app / client: FastAPI test client with the pipeline injected into app.state

No external services are touched: snapshots, Open-Meteo and Redis are all faked.
"""

import os
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("SENTRY_DSN", "")


SNAPSHOT_BASE = "https://feed.test/treasure"
WEATHER_URL = "https://weather.test/v1/forecast"


# ---------------------------------------------------------------------------
# Time doubles
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement: records delays and advances an optional clock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.calls: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._clock is not None:
            self._clock.advance(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorded_sleep(clock) -> RecordingSleep:
    return RecordingSleep(clock)


# ---------------------------------------------------------------------------
# Redis double
# ---------------------------------------------------------------------------

class _FakePipeline:
    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._ops: list[tuple[str, str, int | None]] = []

    def set(self, key: str, value: str, ex: int | None = None) -> "_FakePipeline":
        self._ops.append((key, value, ex))
        return self

    async def execute(self) -> list[bool]:
        self._redis.pipeline_executions += 1
        results = []
        for key, value, ex in self._ops:
            results.append(await self._redis.set(key, value, ex=ex))
        self._ops.clear()
        return results


class FakeRedis:
    """Just enough of redis.asyncio.Redis for WeatherCache, with real EX semantics."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self.mget_calls = 0
        self.pipeline_executions = 0

    def _live(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> str | None:
        return self._live(key)

    async def mget(self, keys: list[str]) -> list[str | None]:
        self.mget_calls += 1
        return [self._live(k) for k in keys]

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        expires_at = self._clock() + ex if ex else None
        self._data[key] = (value, expires_at)
        return True

    def pipeline(self, transaction: bool = True) -> _FakePipeline:
        return _FakePipeline(self)

    async def ping(self) -> bool:
        return True

    def keys_now(self) -> list[str]:
        return [k for k in list(self._data) if self._live(k) is not None]


@pytest.fixture
def fake_redis(clock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def broken_redis():
    """Redis client whose every call fails, as when the server is down."""
    redis = AsyncMock()
    redis.mget = AsyncMock(side_effect=ConnectionError("Redis down"))
    redis.set = AsyncMock(side_effect=ConnectionError("Redis down"))
    pipe = MagicMock()
    pipe.execute = AsyncMock(side_effect=ConnectionError("Redis down"))
    redis.pipeline = MagicMock(return_value=pipe)
    return redis


# ---------------------------------------------------------------------------
# HTTP doubles
# ---------------------------------------------------------------------------

def http_client_for(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose every request is answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_snapshot_body(*entries: Any) -> list[Any]:
    return list(entries)


def make_current_weather(
    temperature: Any = -40.5,
    windspeed: Any = 36.0,
    winddirection: Any = 270.0,
) -> dict[str, Any]:
    """Factory for one Open-Meteo per-location object."""
    return {
        "latitude": 10.0,
        "longitude": 20.0,
        "current_weather": {
            "temperature": temperature,
            "windspeed": windspeed,
            "winddirection": winddirection,
            "weathercode": 3,
            "time": "2026-10-18T12:00",
        },
    }


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_balloon_service():
    service = MagicMock()
    service.build = AsyncMock()
    return service


@pytest.fixture
async def app(mock_balloon_service):
    """Create a test FastAPI app with mocked dependencies."""
    from services.tracker.config import settings
    from services.tracker.main import app as _app

    _app.state.redis = None
    _app.state.settings = settings
    _app.state.balloon_service = mock_balloon_service
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
