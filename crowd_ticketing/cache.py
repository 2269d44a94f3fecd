"""
Redis caching layer for public event listings.

Every operation degrades to a cache miss when redis is not reachable, so the
API keeps serving from the database.
"""

import hashlib
import json
import logging
from typing import Any, Optional, Dict, List

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import get_settings

logger = logging.getLogger(__name__)


class CacheKeyBuilder:
    """Helper class for building consistent cache keys."""

    @staticmethod
    def filters_hash(filters: Dict[str, Any]) -> str:
        """Stable digest of a filter mapping."""
        filters_str = json.dumps(filters, sort_keys=True, default=str)
        return hashlib.md5(filters_str.encode()).hexdigest()

    @staticmethod
    def event_list(filters_hash: str, page: int, size: int) -> str:
        return f"events:list:{filters_hash}:{page}:{size}"

    @staticmethod
    def event_categories() -> str:
        return "events:categories"


class CacheTTL:
    """Cache TTL constants (in seconds)."""

    EVENT_LIST = 300
    EVENT_CATEGORIES = 600


class RedisCache:
    """Redis cache manager with connection handling and operations."""

    def __init__(self):
        self.client: Optional[Redis] = None
        self.pool: Optional[redis.ConnectionPool] = None

    async def initialize(self) -> None:
        """Initialize the connection pool, leaving the cache disabled if redis is down."""
        settings = get_settings()
        if not settings.enable_cache:
            logger.info("Redis cache disabled by configuration")
            return

        try:
            self.pool = redis.ConnectionPool.from_url(
                settings.redis_url,
                max_connections=settings.redis_max_connections,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client = Redis(connection_pool=self.pool)
            await self.client.ping()
            logger.info("Redis cache initialized successfully")
        except (RedisError, OSError) as e:
            logger.warning("Redis unavailable, continuing without cache: %s", e)
            await self.close()

    async def close(self) -> None:
        """Close Redis connections."""
        if self.client:
            await self.client.aclose()
        if self.pool:
            await self.pool.disconnect()
        self.client = None
        self.pool = None

    @property
    def available(self) -> bool:
        return self.client is not None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if not self.client:
            return None

        try:
            value = await self.client.get(key)
            if value:
                return json.loads(value)
            return None
        except (RedisError, ValueError) as e:
            logger.warning("Failed to get cache key %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.client:
            return False

        try:
            serialized_value = json.dumps(value, default=str)
            if ttl:
                await self.client.setex(key, ttl, serialized_value)
            else:
                await self.client.set(key, serialized_value)
            return True
        except (RedisError, TypeError) as e:
            logger.warning("Failed to set cache key %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        if not self.client:
            return False

        try:
            await self.client.delete(key)
            return True
        except RedisError as e:
            logger.warning("Failed to delete cache key %s: %s", key, e)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a glob pattern.

        Returns:
            Number of keys deleted
        """
        if not self.client:
            return 0

        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if keys:
                await self.client.delete(*keys)
            return len(keys)
        except RedisError as e:
            logger.warning("Failed to delete keys with pattern %s: %s", pattern, e)
            return 0

    async def sliding_window_hit(self, key: str, now: float, window: int) -> Optional[int]:
        """
        Record a hit in a sorted-set sliding window.

        Returns:
            Number of hits already inside the window before this one, or
            None when redis is unavailable.
        """
        if not self.client:
            return None

        try:
            pipe = self.client.pipeline()
            pipe.zremrangebyscore(key, 0, now - window)
            pipe.zcard(key)
            pipe.zadd(key, {f"{now}": now})
            pipe.expire(key, window * 2)
            results = await pipe.execute()
            return int(results[1])
        except RedisError as e:
            logger.warning("Failed to record rate limit hit for %s: %s", key, e)
            return None

    async def oldest_score(self, key: str) -> Optional[float]:
        if not self.client:
            return None

        try:
            oldest: List = await self.client.zrange(key, 0, 0, withscores=True)
            return float(oldest[0][1]) if oldest else None
        except RedisError as e:
            logger.warning("Failed to read sliding window %s: %s", key, e)
            return None


# Global cache instance
cache = RedisCache()


async def init_cache() -> None:
    """Initialize the global cache instance."""
    await cache.initialize()


async def close_cache() -> None:
    """Close the global cache instance."""
    await cache.close()


def get_cache() -> RedisCache:
    """Get the global cache instance."""
    return cache


class CacheInvalidator:
    """Helper class for cache invalidation strategies."""

    @staticmethod
    async def invalidate_event_caches() -> None:
        """Drop listing and category caches after any event, ticket or order write."""
        if not cache.available:
            return

        await cache.delete_pattern("events:list:*")
        await cache.delete(CacheKeyBuilder.event_categories())
        logger.debug("Invalidated event listing caches")
