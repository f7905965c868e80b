"""
MergeMates — Shared Redis client.

Connected during application startup only when swipe quotas are enabled;
``get_redis()`` returns ``None`` otherwise.
"""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog

from mergemates.config import get_settings

logger = structlog.get_logger("mergemates.cache")

_redis_client: aioredis.Redis | None = None


async def connect_redis() -> aioredis.Redis:
    global _redis_client

    settings = get_settings()
    _redis_client = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=5,
    )
    # Verify connectivity
    await _redis_client.ping()
    logger.info("redis_connected", url=settings.REDIS_URL)
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("redis_closed")


def get_redis() -> aioredis.Redis | None:
    """Return the shared Redis client (quota counters, health checks)."""
    return _redis_client
