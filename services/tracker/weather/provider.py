"""
Open-Meteo current-weather client for batches of grid cells.

One call covers up to `batch_size` coordinates:
  GET /v1/forecast?latitude=10.0000,11.0000&longitude=20.0000,21.0000&current_weather=true

Response shapes seen in the wild:
  - multi-location:  [{"current_weather": {...}}, {"current_weather": {...}}]
  - single location: {"current_weather": {...}}
  - flattened:       {"current_weather": [{...}, {...}]}

current_weather fields:
  temperature   °C
  windspeed     km/h  -> converted to m/s
  winddirection degrees

Results are matched to cells by position: result[i] belongs to cells[i]. A
short or malformed result leaves the unmatched cells without weather.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Sequence

import httpx

from services.tracker.resilience.retry import RetryExecutor
from services.tracker.types import Cell, WeatherReading

logger = logging.getLogger(__name__)

_KMH_PER_MS = 3.6


def kmh_to_ms(value: float) -> float:
    return value / _KMH_PER_MS


def _number_or_none(value: Any) -> float | None:
    """Finite number -> float. NaN, infinities and out-of-range ints -> None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        result = float(value)
    except OverflowError:
        return None
    return result if math.isfinite(result) else None


def parse_current_weather(current: Any) -> WeatherReading | None:
    """Normalise one current_weather object. None if it isn't an object."""
    if not isinstance(current, dict):
        return None

    wind_kmh = _number_or_none(current.get("windspeed"))
    return WeatherReading(
        temperature_c=_number_or_none(current.get("temperature")),
        wind_speed_ms=kmh_to_ms(wind_kmh) if wind_kmh is not None else None,
        wind_direction_deg=_number_or_none(current.get("winddirection")),
    )


def _split_items(payload: Any) -> list[Any]:
    """Flatten the three response shapes into one list of per-location objects."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        current = payload.get("current_weather")
        if isinstance(current, list):
            return [{"current_weather": cw} for cw in current]
        return [payload]
    return []


def match_results(cells: Sequence[Cell], payload: Any) -> dict[str, WeatherReading]:
    """Pair cells[i] with item[i]. Missing or malformed items are skipped."""
    items = _split_items(payload)
    if len(items) < len(cells):
        logger.warning("Weather batch: %d results for %d cells", len(items), len(cells))

    result: dict[str, WeatherReading] = {}
    for cell, item in zip(cells, items):
        current = item.get("current_weather") if isinstance(item, dict) else None
        reading = parse_current_weather(current)
        if reading is None:
            logger.debug("Weather batch: no current_weather for cell %s", cell.key)
            continue
        result[cell.key] = reading
    return result


class OpenMeteoClient:
    """
    Batched Open-Meteo lookup through a RetryExecutor.

    Usage:
        client = OpenMeteoClient(http, retry=RetryExecutor())
        readings = await client.fetch_current(cells)   # {cell_key: WeatherReading}
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        retry: RetryExecutor,
        api_url: str = "https://api.open-meteo.com/v1/forecast",
        timeout_s: float = 10.0,
    ) -> None:
        self._http = http
        self._retry = retry
        self._api_url = api_url
        self._timeout_s = timeout_s

    @staticmethod
    def build_params(cells: Sequence[Cell]) -> dict[str, str]:
        return {
            "latitude": ",".join(f"{c.lat:.4f}" for c in cells),
            "longitude": ",".join(f"{c.lon:.4f}" for c in cells),
            "current_weather": "true",
        }

    async def fetch_current(self, cells: Sequence[Cell]) -> dict[str, WeatherReading]:
        """
        One remote request for all of `cells`. Returns whatever could be
        resolved; an exhausted retry budget yields {}.
        """
        if not cells:
            return {}

        params = self.build_params(cells)
        resp = await self._retry.run(
            lambda: self._http.get(self._api_url, params=params, timeout=self._timeout_s),
            label=f"Open-Meteo batch (size={len(cells)})",
        )
        if resp is None:
            return {}

        try:
            payload = resp.json()
        except ValueError:
            logger.error("Open-Meteo batch (size=%d): response is not JSON", len(cells))
            return {}

        return match_results(cells, payload)
