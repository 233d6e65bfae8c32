"""Redis connection and the JSON cache used for doctor availability."""

import json
from typing import Any, cast

import redis
import structlog

from carebook.config import settings

logger = structlog.get_logger(__name__)

# Decode errors count as a miss, like an unreachable server
CACHE_ERRORS = (redis.RedisError, TypeError, ValueError)

_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Return the process-wide Redis client, connecting lazily."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Ping Redis; used by startup and the detailed health check."""
    try:
        get_redis_client().ping()
    except redis.RedisError as e:
        logger.warning("redis_ping_failed", error=str(e))
        return False
    return True


def close_redis_connection() -> None:
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """JSON values in Redis.

    Every failure degrades to a miss so callers read through to the database.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def get_json(self, key: str) -> Any | None:
        """
        Read and decode a cached value.

        Args:
            key: Cache key

        Returns:
            Decoded value, or None on a miss or any cache failure
        """
        try:
            raw = cast(str | None, self.redis.get(key))
            return json.loads(raw) if raw else None
        except CACHE_ERRORS as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Encode and store a value, with an expiry when `ttl` (seconds) is given.

        Returns:
            True if the value was stored
        """
        try:
            encoded = json.dumps(value, default=str)
            if ttl:
                self.redis.setex(key, ttl, encoded)
            else:
                self.redis.set(key, encoded)
        except CACHE_ERRORS as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            return False
        return True

    def delete(self, key: str) -> bool:
        """Drop a key; False if Redis could not be reached."""
        try:
            self.redis.delete(key)
        except redis.RedisError as e:
            logger.warning("cache_delete_failed", key=key, error=str(e))
            return False
        return True
