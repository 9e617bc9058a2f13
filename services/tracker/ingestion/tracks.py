"""
Track builder: fold per-hour snapshots into per-balloon tracks.

Entry i of hour h becomes a Position for balloon "balloon-<i>", stamped
now - h hours with snapshot_index = h. Tracks are sorted ascending by
snapshot_index, so points[0] is the newest fix. Tracks may be sparse: a
balloon that is missing from an hour, or an hour that was unavailable,
simply contributes no point.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping

from services.tracker.ingestion.snapshots import Snapshot
from services.tracker.types import Position, Track


def balloon_id_for(index: int) -> str:
    return f"balloon-{index}"


def snapshot_timestamp(now: datetime, hour: int) -> datetime:
    return now - timedelta(hours=hour)


def build_tracks(
    snapshots: Mapping[int, Snapshot | None],
    now: datetime | None = None,
) -> dict[str, Track]:
    """
    Build {balloon_id: Track} from {hour: Snapshot | None}.

    The hour key is authoritative for snapshot_index, so an unavailable hour
    never shifts later hours. Tracks with no valid points are never emitted.
    """
    now = now or datetime.now(timezone.utc)
    collected: dict[str, list[Position]] = {}

    for hour in sorted(snapshots):
        snapshot = snapshots[hour]
        if snapshot is None:
            continue
        ts = snapshot_timestamp(now, hour)
        for record in snapshot.records:
            balloon_id = balloon_id_for(record.index)
            collected.setdefault(balloon_id, []).append(
                Position(
                    balloon_id=balloon_id,
                    timestamp=ts,
                    lat=record.lat,
                    lon=record.lon,
                    alt=record.alt,
                    snapshot_index=hour,
                )
            )

    return {
        balloon_id: Track(
            id=balloon_id,
            points=tuple(sorted(points, key=lambda p: p.snapshot_index)),
        )
        for balloon_id, points in collected.items()
        if points
    }


def flatten_points(tracks: Iterable[Track]) -> tuple[Position, ...]:
    """All positions of all tracks, track by track."""
    return tuple(p for track in tracks for p in track.points)
