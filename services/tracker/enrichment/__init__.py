"""
Enrichment orchestration: snapshots -> tracks -> cells -> weather -> response.

Usage:
    from services.tracker.enrichment import BalloonHistoryService
"""

from __future__ import annotations

from services.tracker.enrichment.orchestrator import BalloonHistoryService, fan_out

__all__ = ["BalloonHistoryService", "fan_out"]
