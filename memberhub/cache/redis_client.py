"""
Redis cache client with connection pooling and JSON serialization.

Every operation degrades to a cache miss when Redis is unreachable; callers
never see a Redis error.
"""
import json
from typing import Optional, Any
from redis import asyncio as aioredis
from memberhub.core.config import settings
from memberhub.core.logging import logger


class RedisCache:
    """Redis cache client with connection pooling."""

    def __init__(self, url: Optional[str] = None, max_connections: int = 20):
        self._url = url
        self._max_connections = max_connections
        self._pool: Optional[aioredis.ConnectionPool] = None
        self._client: Optional[aioredis.Redis] = None

    def _get_client(self) -> aioredis.Redis:
        """Get or create Redis client with connection pooling."""
        if self._client is None:
            self._pool = aioredis.ConnectionPool.from_url(
                self._url or settings.REDIS_URL,
                decode_responses=True,
                max_connections=self._max_connections,
            )
            self._client = aioredis.Redis(connection_pool=self._pool)
            logger.info("Redis connection pool created")
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value for ``key`` or None on miss/error."""
        try:
            value = await self._get_client().get(key)
        except Exception as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            return None
        if value is None:
            return None
        return json.loads(value)

    async def set(self, key: str, value: Any, expire: int = 300) -> bool:
        """Store ``value`` as JSON with a TTL in seconds."""
        try:
            serialized = json.dumps(value, default=str)
            await self._get_client().setex(key, expire, serialized)
            return True
        except Exception as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            return False

    async def delete(self, *keys: str) -> int:
        """Delete one or more keys; returns the number removed."""
        if not keys:
            return 0
        try:
            return await self._get_client().delete(*keys)
        except Exception as e:
            logger.error(f"Redis DELETE error for keys {keys}: {e}")
            return 0

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a glob pattern (e.g. ``events:list:*``).

        Uses SCAN so large keyspaces don't block the server.
        """
        try:
            client = self._get_client()
            keys = [key async for key in client.scan_iter(match=pattern, count=500)]
            if keys:
                return await client.delete(*keys)
            return 0
        except Exception as e:
            logger.error(f"Redis DELETE_PATTERN error for pattern {pattern}: {e}")
            return 0

    async def exists(self, key: str) -> bool:
        try:
            return await self._get_client().exists(key) > 0
        except Exception as e:
            logger.error(f"Redis EXISTS error for key {key}: {e}")
            return False

    async def close(self):
        """Close Redis connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._pool = None
            logger.info("Redis connection pool closed")


# Create a single instance to be imported throughout the app
cache = RedisCache()
