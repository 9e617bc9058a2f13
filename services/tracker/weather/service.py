"""
WeatherBatchFetcher: resolve weather for grid cells, cache first.

Flow per enrichment pass:
  1. One MGET for every cell key (WeatherCache.get)
  2. Misses are chunked into batches of `batch_size` cells
  3. Each batch: one rate limiter unit -> one provider call (with retry)
  4. Each batch's results are pipelined back into Redis with the TTL

Batches run strictly one after another so the limiter's count is exact.
Resolved cells are written into the caller's `into` mapping as soon as each
batch lands, so a caller that cancels on a deadline still keeps every cell
resolved so far.
"""

from __future__ import annotations

import logging
from typing import MutableMapping, Sequence

from services.tracker.resilience.rate_limiter import FixedWindowRateLimiter
from services.tracker.types import Cell, EnrichmentStats, WeatherReading
from services.tracker.weather.cache import WeatherCache
from services.tracker.weather.provider import OpenMeteoClient

logger = logging.getLogger(__name__)


def chunked(cells: Sequence[Cell], size: int) -> list[Sequence[Cell]]:
    return [cells[i : i + size] for i in range(0, len(cells), size)]


class WeatherBatchFetcher:
    """
    Usage:
        fetcher = WeatherBatchFetcher(provider, cache, limiter, batch_size=50)
        cell_weather = {}
        await fetcher.resolve(cells, into=cell_weather)
    """

    def __init__(
        self,
        provider: OpenMeteoClient,
        cache: WeatherCache,
        limiter: FixedWindowRateLimiter,
        batch_size: int = 50,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._provider = provider
        self._cache = cache
        self._limiter = limiter
        self.batch_size = batch_size

    async def resolve(
        self,
        cells: Sequence[Cell],
        into: MutableMapping[str, WeatherReading] | None = None,
        stats: EnrichmentStats | None = None,
    ) -> MutableMapping[str, WeatherReading]:
        """Return {cell_key: WeatherReading} for every cell that could be resolved."""
        cell_weather: MutableMapping[str, WeatherReading] = {} if into is None else into
        stats = stats if stats is not None else EnrichmentStats()
        if not cells:
            return cell_weather

        hits = await self._cache.get([c.key for c in cells])
        cell_weather.update(hits)
        missing = [c for c in cells if c.key not in hits]

        stats.cache_hits += len(hits)
        stats.cache_misses += len(missing)
        logger.info("Weather: %d cells, %d cached, %d to fetch", len(cells), len(hits), len(missing))

        for batch in chunked(missing, self.batch_size):
            waited = await self._limiter.acquire()
            if waited > 0:
                stats.rate_limit_waits += 1

            stats.batches_sent += 1
            fetched = await self._provider.fetch_current(batch)
            if not fetched:
                stats.batches_failed += 1
                logger.warning("Weather batch of %d cells returned nothing", len(batch))
                continue

            cell_weather.update(fetched)
            await self._cache.set_many(fetched)

        return cell_weather
