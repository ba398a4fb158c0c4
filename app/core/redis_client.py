"""Redis connection and the fail-open JSON cache used for pricing rules."""

import json
from typing import Any, cast

import redis
import structlog

from app.config import settings

logger = structlog.get_logger()

_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Get or lazily create the shared Redis client."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Ping Redis; always False while caching is disabled."""
    if not settings.cache_enabled:
        return False
    try:
        return bool(get_redis_client().ping())
    except redis.RedisError:
        return False


def close_redis_connection() -> None:
    """Close the shared client, if one was created."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """
    JSON values in Redis with optional expiry.

    A cache problem must never fail a booking, so every method fails open:
    Redis errors and corrupt entries are logged and reported as a miss
    (``None``), ``False`` or ``0``.
    """

    def __init__(self, redis_client: redis.Redis):
        """Initialize cache manager with Redis client."""
        self.redis = redis_client

    def get_json(self, key: str) -> Any | None:
        """
        Read and decode a cached value.

        Args:
            key: Cache key

        Returns:
            Decoded value, or None on a miss or any failure
        """
        try:
            raw = cast(str | None, self.redis.get(key))
        except redis.RedisError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_entry_corrupt", key=key)
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Encode and store a value; ``ttl`` is in seconds.

        Returns:
            True if the value was written
        """
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                self.redis.setex(key, ttl, payload)
            else:
                self.redis.set(key, payload)
        except redis.RedisError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            return False
        return True

    def delete_pattern(self, pattern: str) -> int:
        """
        Remove every key matching a glob pattern such as ``pricing:*``.

        Keys are collected with SCAN so a large keyspace never blocks Redis.

        Returns:
            Number of keys removed
        """
        try:
            keys = list(self.redis.scan_iter(match=pattern))
            if not keys:
                return 0
            return cast(int, self.redis.delete(*keys))
        except redis.RedisError as e:
            logger.warning("cache_invalidation_failed", pattern=pattern, error=str(e))
            return 0


def get_cache_manager() -> CacheManager | None:
    """Dependency returning the shared cache, or None when caching is disabled."""
    if not settings.cache_enabled:
        return None
    return CacheManager(get_redis_client())
