"""Redis connection used by the rate limiter.

Learn: Redis is optional. The lifespan tries to connect at startup; if it
cannot, get_redis() raises and the rate limiter lets every request through.
"""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from matrixstore.config import settings

# Initialized in the app lifespan
_redis: Optional[aioredis.Redis] = None


async def init_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Connect and verify with a PING. Raises if Redis is unreachable."""
    global _redis
    client = aioredis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except (RedisError, OSError):
        await client.aclose()
        raise
    _redis = client
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


async def ping_redis() -> bool:
    if _redis is None:
        return False
    try:
        return bool(await _redis.ping())
    except (RedisError, OSError):
        return False
