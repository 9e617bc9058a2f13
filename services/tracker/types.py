"""
Core data model for balloon history + weather enrichment.

Position  one validated fix of one balloon in one hourly snapshot
Track     every Position of one balloon, ascending by snapshot_index
Cell      grid square grouping balloons whose latest fixes round together
WeatherReading  current conditions for one cell, shared by its balloons

All public records are frozen. A BalloonHistory is a point-in-time snapshot
and is never mutated after the orchestrator returns it.

Serialised field names are camelCase to match the consumer contract:
  {"balloonId", "timestamp", "lat", "lon", "alt", "snapshotIndex"}
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping


def isoformat_utc(ts: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Position:
    balloon_id: str
    timestamp: datetime
    lat: float
    lon: float
    alt: float | None
    snapshot_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "balloonId": self.balloon_id,
            "timestamp": isoformat_utc(self.timestamp),
            "lat": self.lat,
            "lon": self.lon,
            "alt": self.alt,
            "snapshotIndex": self.snapshot_index,
        }


@dataclass(frozen=True)
class Track:
    """Ordered fixes for one balloon. points[0] is the most recent capture."""

    id: str
    points: tuple[Position, ...]

    @property
    def latest(self) -> Position | None:
        return self.points[0] if self.points else None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "points": [p.to_dict() for p in self.points]}


@dataclass
class Cell:
    """Grid bucket. key doubles as the weather cache key suffix."""

    key: str
    lat: float
    lon: float
    balloon_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class WeatherReading:
    temperature_c: float | None
    wind_speed_ms: float | None
    wind_direction_deg: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "temperatureC": self.temperature_c,
            "windSpeedMs": self.wind_speed_ms,
            "windDirectionDeg": self.wind_direction_deg,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WeatherReading:
        """Inverse of to_dict(). Raises ValueError on a malformed payload."""
        if not isinstance(data, Mapping):
            raise ValueError(f"expected mapping, got {type(data).__name__}")
        values = []
        for name in ("temperatureC", "windSpeedMs", "windDirectionDeg"):
            if name not in data:
                raise ValueError(f"missing field {name!r}")
            value = data[name]
            if value is None:
                values.append(None)
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"field {name!r} is not numeric: {value!r}")
            try:
                number = float(value)
            except OverflowError:
                raise ValueError(f"field {name!r} is out of range") from None
            if not math.isfinite(number):
                raise ValueError(f"field {name!r} is not finite: {value!r}")
            values.append(number)
        return cls(*values)


@dataclass
class EnrichmentStats:
    """Per-run counters, logged at the end of every enrichment pass."""

    hours_requested: int = 0
    hours_available: int = 0
    hours_unavailable: int = 0
    valid_points: int = 0
    tracks: int = 0
    cells: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    batches_sent: int = 0
    batches_failed: int = 0
    rate_limit_waits: int = 0
    deadline_hit: bool = False


@dataclass(frozen=True)
class BalloonHistory:
    """Read-model returned to consumers. Built once per request."""

    generated_at: datetime
    points: tuple[Position, ...]
    balloons: Mapping[str, Track]
    latest_weather: Mapping[str, WeatherReading]
    stats: EnrichmentStats = field(default_factory=EnrichmentStats, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "balloons", MappingProxyType(dict(self.balloons)))
        object.__setattr__(self, "latest_weather", MappingProxyType(dict(self.latest_weather)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "generatedAt": isoformat_utc(self.generated_at),
            "points": [p.to_dict() for p in self.points],
            "balloons": {bid: track.to_dict() for bid, track in self.balloons.items()},
            "latestWeather": {bid: wx.to_dict() for bid, wx in self.latest_weather.items()},
        }
