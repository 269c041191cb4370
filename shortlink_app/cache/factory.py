"""
Factory for creating cache instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum

import redis.asyncio as redis

from .strategies import CacheStrategy, RedisCache, InMemoryCache
from shortlink_app.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"


class CacheFactory:
    """
    Simple factory for creating cache instances.

    Uses Singleton Pattern - creates instance once, reuses it.
    Gets configuration from settings (not passed as parameters).

    There is no silent fallback from Redis to memory: pending view counters
    must be shared with the aggregator, and a per-process dict would hide
    them from it.
    """

    _instance: CacheStrategy = None  # Single cached instance

    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        """
        Create or return cached cache instance.

        Args:
            backend: Type of cache backend (from enum)

        Returns:
            Singleton cache instance
        """
        # Return cached instance if exists
        if cls._instance is not None:
            return cls._instance

        if backend == CacheBackend.REDIS:
            # Connections are opened lazily by the pool on first command
            redis_client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            cls._instance = RedisCache(
                redis_client,
                url_ttl=settings.url_cache_ttl,
                verification_ttl=settings.verification_code_ttl
            )
            logger.info("Redis cache initialized (%s)", settings.redis_url)

        elif backend == CacheBackend.MEMORY:
            cls._instance = InMemoryCache(
                url_ttl=settings.url_cache_ttl,
                verification_ttl=settings.verification_code_ttl
            )
            logger.info("In-memory cache initialized")

        else:
            raise ValueError(f"Unknown cache backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
