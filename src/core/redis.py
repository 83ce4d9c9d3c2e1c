from __future__ import annotations

import logging
import time

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.core.config import settings
from src.schemas.health import (
    CacheConnected,
    CacheDisabled,
    CacheDisconnected,
    CacheState,
)

logger = logging.getLogger(__name__)

# What the application falls back to when redis is unavailable.
CACHE_FALLBACK = "memory/postgresql"

redis_client: aioredis.Redis = aioredis.from_url(  # type: ignore[no-untyped-call]
    settings.redis_url,
    decode_responses=True,
)


async def get_cache_health(redis: aioredis.Redis | None, enabled: bool) -> CacheState:
    """Describe the cache as disabled, connected, or disconnected."""
    if not enabled:
        return CacheDisabled()

    if redis is None:
        return CacheDisconnected(
            message="Redis client not initialized",
            fallback=CACHE_FALLBACK,
        )

    start = time.monotonic()
    try:
        await redis.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return CacheDisconnected(
            response_time_ms=round((time.monotonic() - start) * 1000, 2),
            message=str(exc) or "Connection failed",
            fallback=CACHE_FALLBACK,
        )

    return CacheConnected(response_time_ms=round((time.monotonic() - start) * 1000, 2))
