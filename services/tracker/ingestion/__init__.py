"""
Ingestion package: hourly snapshot fetching and track reconstruction.

Usage:
    from services.tracker.ingestion import SnapshotClient, build_tracks
"""

from __future__ import annotations

from services.tracker.ingestion.snapshots import Snapshot, SnapshotClient, SnapshotRecord, parse_snapshot
from services.tracker.ingestion.tracks import build_tracks, flatten_points

__all__ = [
    "Snapshot",
    "SnapshotClient",
    "SnapshotRecord",
    "parse_snapshot",
    "build_tracks",
    "flatten_points",
]
