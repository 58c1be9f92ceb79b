"""Redis connection management.

Redis holds short-lived server state only: revoked session ids and
pending-join tickets. Nothing in it is authoritative.
"""

from __future__ import annotations

import redis.asyncio as redis

from app.core.config import get_settings

settings = get_settings()

KEY_PREFIX = "np:"

_redis_pool: redis.Redis | None = None


def redis_key(*parts: str) -> str:
    """Build a namespaced key, e.g. ``np:jwt:revoked:<jti>``."""
    return KEY_PREFIX + ":".join(parts)


async def get_redis() -> redis.Redis:
    """Get or create the Redis connection."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.from_url(
            settings.redis_url,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
