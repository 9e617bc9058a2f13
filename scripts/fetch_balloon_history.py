#!/usr/bin/env python3
"""
Run one balloon history + weather enrichment pass from the command line.

Usage:
    PYTHONPATH=. python3 scripts/fetch_balloon_history.py
    PYTHONPATH=. python3 scripts/fetch_balloon_history.py --hours 6 --grid 2 --output history.json
    PYTHONPATH=. python3 scripts/fetch_balloon_history.py --no-weather -v

Reads the same environment as the API (REDIS_URL, WEATHER_CACHE_TTL_SECONDS, ...).
Exits 1 if the pass itself fails.
"""

import argparse
import asyncio
import json
import logging
import sys

import httpx

from services.tracker.config import Settings
from services.tracker.enrichment import BalloonHistoryService
from services.tracker.redis_client import connect_redis

logger = logging.getLogger("fetch_balloon_history")


async def run(settings: Settings, with_weather: bool, output: str | None) -> int:
    redis_client = await connect_redis(settings.redis_url) if with_weather else None
    try:
        async with httpx.AsyncClient(follow_redirects=True) as http:
            service = BalloonHistoryService.from_settings(settings, http=http, redis=redis_client)
            try:
                history = await service.build(with_weather=with_weather)
            except Exception:
                logger.exception("Could not build balloon history")
                return 1
    finally:
        if redis_client is not None:
            await redis_client.aclose()

    payload = history.to_dict()
    if output:
        with open(output, "w") as f:
            json.dump(payload, f, indent=2)
        logger.info("Payload written to %s", output)

    print(
        f"balloons={len(history.balloons)} points={len(history.points)} "
        f"with_weather={len(history.latest_weather)} "
        f"hours={history.stats.hours_available}/{history.stats.hours_requested}"
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Build balloon tracks and enrich them with weather")
    parser.add_argument("--hours", type=int, default=None, help="Lookback window in hours (1-24)")
    parser.add_argument("--grid", type=float, default=None, help="Weather grid size in degrees")
    parser.add_argument("--no-weather", action="store_true", help="Build tracks only")
    parser.add_argument("--output", "-o", default=None, help="Write the JSON payload to this path")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    overrides = {}
    if args.hours is not None:
        overrides["snapshot_hours_back"] = args.hours
    if args.grid is not None:
        overrides["grid_degrees"] = args.grid
    settings = Settings(**overrides)

    sys.exit(asyncio.run(run(settings, with_weather=not args.no_weather, output=args.output)))


if __name__ == "__main__":
    main()
