"""
Grid clustering of latest balloon positions.

Each balloon's newest fix is snapped to the nearest multiple of the grid
size (default 1 degree) and balloons landing on the same snapped point share
one Cell and therefore one weather lookup.

Cell key format:  "{lat:.1f}:{lon:.1f}"   e.g. "10.0:-21.0"
The key is also the suffix of the Redis key ("wx:10.0:-21.0"), so it must
be byte-for-byte stable for the same input.
"""

from __future__ import annotations

import math
from typing import Mapping

from services.tracker.types import Cell, Track


def round_to_grid(value: float, grid_degrees: float) -> float:
    """Nearest multiple of grid_degrees, halves rounded up. Never returns -0.0."""
    snapped = math.floor(value / grid_degrees + 0.5) * grid_degrees
    return snapped + 0.0


def cell_key(lat: float, lon: float) -> str:
    return f"{lat:.1f}:{lon:.1f}"


def cluster_latest_positions(
    tracks: Mapping[str, Track],
    grid_degrees: float = 1.0,
) -> list[Cell]:
    """Group tracks by the grid cell of their latest point. Empty tracks are skipped."""
    cells: dict[str, Cell] = {}

    for track in tracks.values():
        latest = track.latest
        if latest is None:
            continue

        lat = round_to_grid(latest.lat, grid_degrees)
        lon = round_to_grid(latest.lon, grid_degrees)
        key = cell_key(lat, lon)

        cell = cells.get(key)
        if cell is None:
            cell = cells[key] = Cell(key=key, lat=lat, lon=lon)
        cell.balloon_ids.append(track.id)

    return list(cells.values())
