"""
Redis cache client with connection pooling and JSON serialization.
"""
import json
from typing import Optional, Any
import redis
from redis.connection import ConnectionPool
from eventhub.core.config import settings
from eventhub.core.logging import logger


class RedisCache:
    """Redis cache client with connection pooling.

    Cache failures are logged and reported as misses; they never fail a request.
    """

    def __init__(self, url: Optional[str] = None):
        self._url = url or settings.REDIS_URL
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    def _get_client(self) -> redis.Redis:
        """Get or create Redis client with connection pooling."""
        if self._client is None:
            self._pool = redis.ConnectionPool.from_url(
                self._url,
                decode_responses=True,
                max_connections=20,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            logger.info("Redis connection pool created")
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache by key.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        try:
            value = self._get_client().get(key)
        except redis.RedisError as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            return None
        return json.loads(value) if value else None

    async def set(self, key: str, value: Any, expire: int = 300) -> bool:
        """
        Set value in cache with expiration.

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            expire: Expiration time in seconds (default: 300)

        Returns:
            True if successful, False otherwise
        """
        try:
            self._get_client().setex(key, expire, json.dumps(value, default=str))
            return True
        except redis.RedisError as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            self._get_client().delete(key)
            return True
        except redis.RedisError as e:
            logger.error(f"Redis DELETE error for key {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching pattern.

        Args:
            pattern: Key pattern (e.g., 'events:*')

        Returns:
            Number of keys deleted
        """
        try:
            client = self._get_client()
            keys = list(client.scan_iter(match=pattern))
            return client.delete(*keys) if keys else 0
        except redis.RedisError as e:
            logger.error(f"Redis DELETE_PATTERN error for pattern {pattern}: {e}")
            return 0

    async def exists(self, key: str) -> bool:
        try:
            return self._get_client().exists(key) > 0
        except redis.RedisError as e:
            logger.error(f"Redis EXISTS error for key {key}: {e}")
            return False

    def close(self):
        """Close Redis connection pool."""
        if self._client:
            self._client.close()
            self._client = None
            logger.info("Redis connection pool closed")


# Create a single instance to be imported throughout the app
cache = RedisCache()
