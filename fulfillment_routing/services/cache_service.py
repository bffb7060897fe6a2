"""
Multi-Tenant Cache Service for zone resolution lookups.

IMPORTANT: All cache keys MUST include store_id to prevent cross-store
data leakage.

Supports:
1. Redis (preferred for production)
2. In-memory fallback (for development/testing)

Usage:
    cache = get_cache()

    await cache.set_zone_id(store_id, country, state, pincode, zone_id)
    zone_id = await cache.get_zone_id(store_id, country, state, pincode)

    # Invalidate all zone lookups for a store after zone edits
    await cache.invalidate_zones(store_id)
"""
import json
from typing import Any, Optional, Dict
from datetime import datetime, timedelta, timezone
from abc import ABC, abstractmethod
import asyncio
import logging

import redis.asyncio as redis

from fulfillment_routing.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Abstract cache backend interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (seconds)."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        pass

    @abstractmethod
    async def clear_pattern(self, pattern: str) -> int:
        """Clear all keys matching pattern."""
        pass


class InMemoryCache(CacheBackend):
    """
    In-memory cache for development/fallback.

    Note: in production prefer Redis, as the in-memory cache is not shared
    across server instances.
    """

    def __init__(self):
        self._cache: Dict[str, tuple[Any, datetime]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            if key in self._cache:
                value, expires_at = self._cache[key]
                if expires_at > datetime.now(timezone.utc):
                    return value
                else:
                    del self._cache[key]
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        async with self._lock:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
            self._cache[key] = (value, expires_at)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    async def clear_pattern(self, pattern: str) -> int:
        """Clear keys matching pattern (simple prefix match)."""
        async with self._lock:
            prefix = pattern.rstrip('*')
            keys_to_delete = [k for k in self._cache.keys() if k.startswith(prefix)]
            for key in keys_to_delete:
                del self._cache[key]
            return len(keys_to_delete)


class RedisCache(CacheBackend):
    """Redis cache backend for production.

    Cache failures degrade to a miss; routing must never fail because
    Redis is unavailable.
    """

    def __init__(self, redis_url: str):
        self._client = redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self._client.get(key)
            if value:
                return json.loads(value)
            return None
        except redis.RedisError as e:
            logger.warning(f"Redis get failed for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        try:
            await self._client.set(key, json.dumps(value), ex=ttl)
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis set failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            await self._client.delete(key)
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis delete failed for {key}: {e}")
            return False

    async def clear_pattern(self, pattern: str) -> int:
        try:
            cursor = 0
            deleted = 0
            while True:
                cursor, keys = await self._client.scan(cursor, match=pattern, count=100)
                if keys:
                    await self._client.delete(*keys)
                    deleted += len(keys)
                if cursor == 0:
                    break
            return deleted
        except redis.RedisError as e:
            logger.warning(f"Redis clear_pattern failed for {pattern}: {e}")
            return 0


class CacheService:
    """
    Multi-Tenant Cache Service.

    Cache keys follow the format:

        {namespace}:{store_id}:{resource_type}:{identifier}

    Example:
        routing:7c1e...:zone:IN:TN:600001
    """

    def __init__(self, backend: CacheBackend, namespace: str = "routing"):
        self._backend = backend
        self._namespace = namespace

    def _make_key(self, store_id: str, key: str) -> str:
        """Create namespaced, store-isolated cache key."""
        if not store_id:
            logger.warning(f"Cache key created without store_id: {key}")
        return f"{self._namespace}:{store_id}:{key}"

    async def get(self, store_id: str, key: str) -> Optional[Any]:
        return await self._backend.get(self._make_key(store_id, key))

    async def set(self, store_id: str, key: str, value: Any, ttl: int = 3600) -> bool:
        return await self._backend.set(self._make_key(store_id, key), value, ttl)

    async def delete(self, store_id: str, key: str) -> bool:
        return await self._backend.delete(self._make_key(store_id, key))

    async def clear_pattern(self, store_id: str, pattern: str) -> int:
        return await self._backend.clear_pattern(self._make_key(store_id, pattern))

    # ==================== Zone Resolution Cache ====================

    def _zone_key(self, country: str, state: str, pincode: str) -> str:
        """Generate cache key for an address -> zone lookup (store_id added by caller)."""
        return f"zone:{country.upper()}:{state or '-'}:{pincode or '-'}"

    async def get_zone_id(
        self,
        store_id: str,
        country: str,
        state: str,
        pincode: str
    ) -> Optional[str]:
        """Get cached zone id for an address."""
        return await self.get(store_id, self._zone_key(country, state, pincode))

    async def set_zone_id(
        self,
        store_id: str,
        country: str,
        state: str,
        pincode: str,
        zone_id: str,
        ttl: Optional[int] = None
    ) -> bool:
        """Cache the zone id an address resolved to."""
        ttl = ttl or settings.ZONE_CACHE_TTL
        return await self.set(store_id, self._zone_key(country, state, pincode), zone_id, ttl)

    async def invalidate_zones(self, store_id: str) -> int:
        """Invalidate all zone lookups for a store."""
        return await self.clear_pattern(store_id, "zone:*")


# Singleton cache instance
_cache_instance: Optional[CacheService] = None


def get_cache() -> CacheService:
    """Get the cache service singleton."""
    global _cache_instance

    if _cache_instance is None:
        if settings.REDIS_URL and settings.CACHE_ENABLED:
            backend = RedisCache(settings.REDIS_URL)
            logger.info("Cache initialized with Redis backend")
        else:
            backend = InMemoryCache()
            logger.info("Cache initialized with in-memory backend")

        _cache_instance = CacheService(backend)

    return _cache_instance


def reset_cache() -> None:
    """Drop the cache singleton (useful for testing)."""
    global _cache_instance
    _cache_instance = None
