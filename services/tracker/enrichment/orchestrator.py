"""
BalloonHistoryService: the single read entry point.

Pipeline stages:
1. Fetch: all hourly snapshots concurrently, wait for every hour to settle
2. Build: fold snapshots into per-balloon tracks
3. Cluster: snap each track's latest fix onto the weather grid
4. Resolve: cache lookup, then rate-limited batched provider calls for misses
5. Fan-out: every balloon in a resolved cell gets that cell's reading

The whole run is bounded by `timeout_s`. Hitting it never raises: pending
snapshot hours count as unavailable and the weather stage keeps whatever
cells it had resolved when it was cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

import httpx

from services.tracker.ingestion.snapshots import SnapshotClient
from services.tracker.ingestion.tracks import build_tracks, flatten_points
from services.tracker.resilience.rate_limiter import FixedWindowRateLimiter
from services.tracker.resilience.retry import RetryExecutor
from services.tracker.types import BalloonHistory, Cell, EnrichmentStats, Track, WeatherReading
from services.tracker.weather.cache import WeatherCache
from services.tracker.weather.grid import cluster_latest_positions
from services.tracker.weather.provider import OpenMeteoClient
from services.tracker.weather.service import WeatherBatchFetcher

logger = logging.getLogger(__name__)


def fan_out(
    cells: Sequence[Cell],
    cell_weather: Mapping[str, WeatherReading],
) -> dict[str, WeatherReading]:
    """Assign each resolved cell's reading object to every balloon in it."""
    latest_weather: dict[str, WeatherReading] = {}
    for cell in cells:
        reading = cell_weather.get(cell.key)
        if reading is None:
            continue
        for balloon_id in cell.balloon_ids:
            latest_weather[balloon_id] = reading
    return latest_weather


class BalloonHistoryService:
    """
    Usage:
        service = BalloonHistoryService.from_settings(settings, http=http, redis=redis)
        history = await service.build()
        payload = history.to_dict()
    """

    def __init__(
        self,
        snapshots: SnapshotClient,
        weather: WeatherBatchFetcher,
        hours_back: int = 24,
        grid_degrees: float = 1.0,
        timeout_s: float = 25.0,
    ) -> None:
        self._snapshots = snapshots
        self._weather = weather
        self.hours_back = hours_back
        self.grid_degrees = grid_degrees
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls, settings: Any, http: httpx.AsyncClient, redis: Any = None) -> BalloonHistoryService:
        """Wire every component from a Settings instance and shared clients."""
        snapshots = SnapshotClient(
            http,
            base_url=settings.snapshot_base_url,
            request_timeout_s=settings.snapshot_timeout_s,
            max_concurrency=settings.snapshot_max_concurrency,
        )
        provider = OpenMeteoClient(
            http,
            retry=RetryExecutor(
                max_attempts=settings.weather_retry_max_attempts,
                base_delay_s=settings.weather_retry_base_delay_s,
            ),
            api_url=settings.weather_api_url,
            timeout_s=settings.weather_api_timeout_s,
        )
        cache = WeatherCache(
            redis,
            ttl_seconds=settings.weather_cache_ttl_seconds,
            namespace=settings.weather_cache_namespace,
        )
        limiter = FixedWindowRateLimiter(
            max_per_window=settings.weather_rate_limit_max_requests,
            window_s=settings.weather_rate_limit_window_s,
        )
        weather = WeatherBatchFetcher(provider, cache, limiter, batch_size=settings.weather_batch_size)
        return cls(
            snapshots,
            weather,
            hours_back=settings.snapshot_hours_back,
            grid_degrees=settings.grid_degrees,
            timeout_s=settings.enrichment_timeout_s,
        )

    async def build_tracks(self, stats: EnrichmentStats, timeout_s: float | None = None) -> dict[str, Track]:
        """Stages 1-2. Unavailable hours are skipped, never fatal."""
        snapshots = await self._snapshots.fetch_all(self.hours_back, timeout_s=timeout_s)

        stats.hours_requested = self.hours_back
        stats.hours_available = sum(1 for s in snapshots.values() if s is not None)
        stats.hours_unavailable = stats.hours_requested - stats.hours_available

        tracks = build_tracks(snapshots)
        stats.tracks = len(tracks)
        stats.valid_points = sum(len(t.points) for t in tracks.values())
        return tracks

    async def build(self, with_weather: bool = True) -> BalloonHistory:
        """Run the full pipeline and return an immutable BalloonHistory."""
        started = time.monotonic()
        stats = EnrichmentStats()

        tracks = await self.build_tracks(stats, timeout_s=self.timeout_s)
        if stats.hours_available < stats.hours_requested:
            stats.deadline_hit = (time.monotonic() - started) >= self.timeout_s

        latest_weather: dict[str, WeatherReading] = {}
        if with_weather and tracks:
            cells = cluster_latest_positions(tracks, self.grid_degrees)
            stats.cells = len(cells)

            cell_weather: dict[str, WeatherReading] = {}
            remaining = self.timeout_s - (time.monotonic() - started)
            try:
                await asyncio.wait_for(
                    self._weather.resolve(cells, into=cell_weather, stats=stats),
                    timeout=max(remaining, 0.0),
                )
            except asyncio.TimeoutError:
                stats.deadline_hit = True
                logger.warning(
                    "Enrichment deadline hit: %d/%d cells resolved, returning partial weather",
                    len(cell_weather),
                    len(cells),
                )

            latest_weather = fan_out(cells, cell_weather)

        history = BalloonHistory(
            generated_at=datetime.now(timezone.utc),
            points=flatten_points(tracks.values()),
            balloons=tracks,
            latest_weather=latest_weather,
            stats=stats,
        )

        logger.info(
            "Balloon history built in %.2fs: hours=%d/%d tracks=%d points=%d cells=%d "
            "cache_hits=%d cache_misses=%d batches=%d failed=%d waits=%d with_weather=%d deadline=%s",
            time.monotonic() - started,
            stats.hours_available,
            stats.hours_requested,
            stats.tracks,
            stats.valid_points,
            stats.cells,
            stats.cache_hits,
            stats.cache_misses,
            stats.batches_sent,
            stats.batches_failed,
            stats.rate_limit_waits,
            len(latest_weather),
            stats.deadline_hit,
        )
        return history
