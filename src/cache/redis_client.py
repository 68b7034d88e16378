"""
Redis cache for latest-reading lookups.

Only the latest-reading endpoint is cached; widget series are always computed
from the reading store. All cache operations are best-effort: connection or
command failures are logged and reported as a miss, never raised. The Redis
URL comes from ServiceSettings, so a value set only in ``.env`` is honoured.

CHANGELOG:
- 2026-10-18: Take the Redis URL from ServiceSettings instead of os.environ
  (STORY-034)
- 2026-10-18: Company-scoped latest-reading cache helpers (STORY-031)
- 2026-02-14: Initial creation (STORY-007)
"""

import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)


async def get_redis(redis_url: str) -> redis.Redis:
    """Create and return an async Redis client for ``redis_url``."""
    return redis.from_url(redis_url)


def latest_cache_key(company_id: str, device_id: str) -> str:
    """Cache key of a device's latest reading, scoped to its company."""
    return f"latest:{company_id}:{device_id}"


async def read_cached(redis_url: str, key: str) -> str | None:
    """Return the cached value for ``key``, or None on miss or failure."""
    try:
        client = await get_redis(redis_url)
        try:
            cached = await client.get(key)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis read failed for key %s", key, exc_info=True)
        return None
    if cached is None:
        return None
    return cached.decode("utf-8") if isinstance(cached, bytes) else cached


async def write_cached(redis_url: str, key: str, value: str, ttl_s: int) -> None:
    """Store ``value`` under ``key`` with a TTL, ignoring failures."""
    try:
        client = await get_redis(redis_url)
        try:
            await client.set(key, value, ex=ttl_s)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis write failed for key %s", key, exc_info=True)
