"""Caching layer - read-through caches invalidated by lifecycle events."""

from artistdesk.application.cache.base_cache import BaseCache, InMemoryCache
from artistdesk.application.cache.entity_cache import EntityCache
from artistdesk.application.cache.invalidation import CacheInvalidationListener

__all__ = [
    "BaseCache",
    "CacheInvalidationListener",
    "EntityCache",
    "InMemoryCache",
]
