"""
Weather cache: Redis-backed, keyed per grid cell.

Cache key format:  {namespace}:{lat 1dp}:{lon 1dp}     e.g. wx:47.0:-122.0
TTL:               configurable (WEATHER_CACHE_TTL_SECONDS, default 900s)

Values are WeatherReading.to_dict() serialised as compact JSON. Expiry is
enforced by Redis itself (SET ... EX), so an expired entry simply comes
back as a miss from MGET.

Graceful degradation: when redis is None, or any Redis call fails, get()
returns no hits and writes are no-ops. Callers end up fetching everything
from the provider instead of failing the request.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence

from services.tracker.types import WeatherReading

logger = logging.getLogger(__name__)

_DEFAULT_NAMESPACE = "wx"


def _decode(raw: Any) -> str:
    return raw.decode() if isinstance(raw, bytes) else raw


class WeatherCache:
    """
    Usage:
        cache = WeatherCache(redis_client, ttl_seconds=900)
        hits = await cache.get(["47.0:-122.0", "10.0:20.0"])   # {key: WeatherReading}
        await cache.set_many({"10.0:20.0": reading})
    """

    def __init__(
        self,
        redis: Any,
        ttl_seconds: int = 900,
        namespace: str = _DEFAULT_NAMESPACE,
    ) -> None:
        """
        Args:
            redis:       An async Redis client (redis.asyncio compatible).
                         May be None; all operations then degrade to misses.
            ttl_seconds: Expiry applied to every write. 0 disables writes.
            namespace:   Key prefix separating our entries from other data.
        """
        self._redis = redis
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace

    def redis_key(self, cell_key: str) -> str:
        return f"{self.namespace}:{cell_key}"

    async def get(self, cell_keys: Sequence[str]) -> dict[str, WeatherReading]:
        """
        Bulk lookup in a single MGET. Returns only the keys that hit and
        parsed cleanly; unparseable entries are logged and treated as misses.
        """
        if self._redis is None or not cell_keys:
            return {}

        redis_keys = [self.redis_key(k) for k in cell_keys]
        try:
            raw_values = await self._redis.mget(redis_keys)
        except Exception:
            logger.warning("Weather cache MGET failed for %d keys", len(redis_keys), exc_info=True)
            return {}

        hits: dict[str, WeatherReading] = {}
        for cell_key, raw in zip(cell_keys, raw_values):
            if raw is None:
                continue
            try:
                hits[cell_key] = WeatherReading.from_dict(json.loads(_decode(raw)))
            except (ValueError, TypeError):
                logger.warning("Discarding unparseable cached weather for %s", self.redis_key(cell_key))

        logger.debug("Weather cache: %d/%d hits", len(hits), len(cell_keys))
        return hits

    async def set(self, cell_key: str, reading: WeatherReading, ttl_seconds: int | None = None) -> None:
        """Write one reading with expiry."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if self._redis is None or ttl <= 0:
            return

        key = self.redis_key(cell_key)
        try:
            await self._redis.set(key, json.dumps(reading.to_dict()), ex=ttl)
            logger.debug("Weather cached: key=%s ttl=%ds", key, ttl)
        except Exception:
            logger.warning("Weather cache SET failed for key=%s", key, exc_info=True)

    async def set_many(
        self,
        readings: Mapping[str, WeatherReading],
        ttl_seconds: int | None = None,
    ) -> None:
        """
        Write several readings in one pipeline round trip. Not atomic: a
        failure part-way leaves whatever was already applied.
        """
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if self._redis is None or ttl <= 0 or not readings:
            return

        try:
            pipe = self._redis.pipeline(transaction=False)
            for cell_key, reading in readings.items():
                pipe.set(self.redis_key(cell_key), json.dumps(reading.to_dict()), ex=ttl)
            await pipe.execute()
            logger.debug("Weather cached: %d keys ttl=%ds", len(readings), ttl)
        except Exception:
            logger.warning("Weather cache pipeline SET failed for %d keys", len(readings), exc_info=True)

