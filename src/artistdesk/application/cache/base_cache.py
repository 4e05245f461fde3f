"""Base cache interface and in-memory implementation."""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

K = TypeVar("K")  # Key type
V = TypeVar("V")  # Value type


@dataclass
class CacheEntry(Generic[V]):
    """Cached value plus the moment it was stored."""

    value: V
    created_at: float
    ttl_seconds: int

    # Wall-clock based. A backwards clock jump makes entries live a bit longer, harmless here.
    def is_expired(self) -> bool:
        """Check if cache entry is expired."""
        return time.time() > (self.created_at + self.ttl_seconds)


class BaseCache(ABC, Generic[K, V]):
    """Base cache interface for all cache implementations."""

    @abstractmethod
    async def get(self, key: K) -> V | None:
        """Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value if found and not expired, None otherwise
        """
        pass

    @abstractmethod
    async def set(self, key: K, value: V, ttl_seconds: int = 300) -> None:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl_seconds: Time to live in seconds
        """
        pass

    @abstractmethod
    async def delete(self, key: K) -> bool:
        """Delete value from cache.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix.

        Returns:
            Number of keys removed
        """
        pass

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        pass

    @abstractmethod
    def get_stats(self) -> dict[str, Any]:
        """Entry counts (total/active/expired)."""
        pass


class InMemoryCache(BaseCache[K, V]):
    """Dict-backed cache for a single process.

    Hey future me - nothing here survives a restart and nothing is shared between workers.
    Fine for show/list read-through caching with a 5 minute TTL. Every touch of _cache
    goes through _lock, including the expiry eviction inside get().
    """

    def __init__(self) -> None:
        """Initialize in-memory cache."""
        self._cache: dict[K, CacheEntry[V]] = {}
        self._lock = asyncio.Lock()

    # get() evicts expired entries on read, so "missing" and "expired" both return None
    async def get(self, key: K) -> V | None:
        """Get value from cache."""
        async with self._lock:
            entry = self._cache.get(key)
            if not entry:
                return None

            if entry.is_expired():
                del self._cache[key]
                return None

            return entry.value

    async def set(self, key: K, value: V, ttl_seconds: int = 300) -> None:
        """Set value in cache (overwrites)."""
        async with self._lock:
            self._cache[key] = CacheEntry(
                value=value,
                created_at=time.time(),
                ttl_seconds=ttl_seconds,
            )

    async def delete(self, key: K) -> bool:
        """Delete value from cache."""
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    # Yo, list keys carry a filters hash we can't rebuild at invalidation time, so lists
    # are dropped by prefix ("artists:list:") instead of one by one.
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every string key starting with prefix."""
        async with self._lock:
            doomed = [key for key in self._cache if isinstance(key, str) and key.startswith(prefix)]
            for key in doomed:
                del self._cache[key]
            return len(doomed)

    async def cleanup_expired(self) -> int:
        """Remove expired entries from cache.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            expired_keys = [key for key, entry in self._cache.items() if entry.is_expired()]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    # Not locked, numbers may be slightly stale under concurrent writes
    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total_entries = len(self._cache)
        expired_entries = sum(1 for entry in self._cache.values() if entry.is_expired())

        return {
            "total_entries": total_entries,
            "active_entries": total_entries - expired_entries,
            "expired_entries": expired_entries,
        }
