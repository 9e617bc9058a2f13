"""
Redis connection helper shared by the API lifespan and the CLI.

The client is created explicitly by whoever owns the process lifecycle and
passed down; nothing in the pipeline reaches for a module-level connection.
"""

import logging

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


async def connect_redis(url: str, connect_timeout_s: float = 5.0):
    """Return a live async Redis client, or None if unset/unreachable."""
    if not url:
        logger.warning("REDIS_URL not set; running without weather cache")
        return None
    client = None
    try:
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=connect_timeout_s,
        )
        await client.ping()
        return client
    except Exception:
        # Cache degrades gracefully; every cell is fetched from the provider
        logger.warning("Redis unreachable; running without weather cache", exc_info=True)
        if client is not None:
            await client.aclose()
        return None
