"""Cache module for Redis-backed ephemeral state."""

from tenantforge.core.cache.redis import (
    RedisCache,
    close_redis_pool,
    get_cache,
    redis_client,
)


__all__ = [
    "RedisCache",
    "close_redis_pool",
    "get_cache",
    "redis_client",
]
