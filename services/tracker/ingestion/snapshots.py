"""
Snapshot fetcher for the hourly balloon position feed.

Feed layout:
  GET {base}/00.json  -> most recent hour
  GET {base}/23.json  -> 23 hours ago

Each body is expected to be a JSON array of [lat, lon, alt?] entries. The
upstream feed is known to serve corrupted hours: non-array bodies, entries
like ["bad"], NaN coordinates, out-of-range latitudes. Anything that can't be
read as a valid fix is dropped here; the rest of the hour is still used.

Balloon identity is positional: entry i of every hour is assumed to be the
same balloon. The feed carries no stable id, so if upstream reorders its
array between hours, tracks will splice unrelated balloons together. That
behaviour is preserved as-is.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_LAT_RANGE = (-90.0, 90.0)
_LON_RANGE = (-180.0, 180.0)


@dataclass(frozen=True)
class SnapshotRecord:
    """One validated fix. index is the entry's position in the hour's array."""

    index: int
    lat: float
    lon: float
    alt: float | None


@dataclass(frozen=True)
class Snapshot:
    hour: int
    records: tuple[SnapshotRecord, ...]
    dropped: int = 0


def _coerce_float(value: Any) -> float | None:
    """Number-ish -> finite float, anything else -> None."""
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        result = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return result if math.isfinite(result) else None


def parse_record(index: int, entry: Any) -> SnapshotRecord | None:
    """Validate a single raw entry. Returns None if it must be dropped."""
    if not isinstance(entry, (list, tuple)) or len(entry) < 2:
        return None

    lat = _coerce_float(entry[0])
    lon = _coerce_float(entry[1])
    if lat is None or lon is None:
        return None
    if not (_LAT_RANGE[0] <= lat <= _LAT_RANGE[1]):
        return None
    if not (_LON_RANGE[0] <= lon <= _LON_RANGE[1]):
        return None

    alt = _coerce_float(entry[2]) if len(entry) > 2 else None
    return SnapshotRecord(index=index, lat=lat, lon=lon, alt=alt)


def parse_snapshot(hour: int, body: Any) -> Snapshot | None:
    """Turn a decoded JSON body into a Snapshot, or None if it isn't an array."""
    if not isinstance(body, list):
        return None

    records = []
    for index, entry in enumerate(body):
        record = parse_record(index, entry)
        if record is not None:
            records.append(record)

    dropped = len(body) - len(records)
    if dropped:
        logger.debug("Snapshot %02d: dropped %d malformed entries of %d", hour, dropped, len(body))
    return Snapshot(hour=hour, records=tuple(records), dropped=dropped)


class SnapshotClient:
    """
    Fetches hourly snapshots over a shared httpx.AsyncClient.

    Usage:
        client = SnapshotClient(http, base_url="https://.../treasure")
        snapshots = await client.fetch_all(24, timeout_s=20.0)
        # {0: Snapshot(...), 1: None, ...}  None = unavailable hour
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        request_timeout_s: float = 8.0,
        max_concurrency: int = 24,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._request_timeout_s = request_timeout_s
        self._max_concurrency = max_concurrency

    def url_for(self, hour: int) -> str:
        return f"{self._base_url}/{hour:02d}.json"

    async def fetch_hour(self, hour: int) -> Snapshot | None:
        """
        Fetch and parse one hour. Network errors, non-2xx statuses, bodies that
        are not JSON and bodies that are not arrays all return None.
        """
        url = self.url_for(hour)
        try:
            resp = await self._http.get(url, timeout=self._request_timeout_s)
        except httpx.RequestError as exc:
            logger.warning("Snapshot %02d: request failed: %s", hour, exc)
            return None

        if not resp.is_success:
            logger.warning("Snapshot %02d: HTTP %d", hour, resp.status_code)
            return None

        try:
            body = resp.json()
        except ValueError:
            logger.warning("Snapshot %02d: body is not valid JSON", hour)
            return None

        snapshot = parse_snapshot(hour, body)
        if snapshot is None:
            logger.warning("Snapshot %02d: body is not an array (%s)", hour, type(body).__name__)
        return snapshot

    async def fetch_all(
        self,
        hours_back: int,
        timeout_s: float | None = None,
    ) -> dict[int, Snapshot | None]:
        """
        Fetch hours [0, hours_back) concurrently and wait for all of them.

        Individual failures never abort the group. If timeout_s elapses first,
        hours still in flight are cancelled and reported as None.
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(hour: int) -> Snapshot | None:
            async with semaphore:
                return await self.fetch_hour(hour)

        if hours_back <= 0:
            return {}

        tasks = {hour: asyncio.create_task(_bounded(hour)) for hour in range(hours_back)}
        try:
            done, pending = await asyncio.wait(tasks.values(), timeout=timeout_s)
        except asyncio.CancelledError:
            for task in tasks.values():
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            logger.warning("Snapshot fetch deadline hit: %d hours still pending", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

        results: dict[int, Snapshot | None] = {}
        for hour, task in tasks.items():
            if task not in done:
                results[hour] = None
                continue
            exc = task.exception()
            if exc is not None:
                logger.error("Snapshot %02d: unexpected error", hour, exc_info=exc)
                results[hour] = None
            else:
                results[hour] = task.result()
        return results
