"""
Weather package.

Provides Open-Meteo integration with per-grid-cell Redis caching.
Balloons whose latest fixes share a grid cell share one lookup: the cell is
the cache key, not the balloon.
"""

from services.tracker.weather.cache import WeatherCache
from services.tracker.weather.grid import cluster_latest_positions, round_to_grid
from services.tracker.weather.provider import OpenMeteoClient
from services.tracker.weather.service import WeatherBatchFetcher

__all__ = [
    "WeatherCache",
    "OpenMeteoClient",
    "WeatherBatchFetcher",
    "cluster_latest_positions",
    "round_to_grid",
]
