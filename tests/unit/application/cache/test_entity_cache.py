"""Tests for InMemoryCache, EntityCache and CacheInvalidationListener."""

from unittest.mock import AsyncMock, patch

import pytest

from artistdesk.application.cache import (
    CacheInvalidationListener,
    EntityCache,
    InMemoryCache,
)
from artistdesk.application.events import LifecycleEvent
from artistdesk.domain.entities import LifecycleEventType


class TestInMemoryCache:
    """Test InMemoryCache."""

    async def test_set_get_delete(self) -> None:
        cache: InMemoryCache[str, int] = InMemoryCache()
        await cache.set("a", 1)

        assert await cache.get("a") == 1
        assert await cache.delete("a") is True
        assert await cache.delete("a") is False
        assert await cache.get("a") is None

    async def test_expired_entries_are_evicted(self) -> None:
        cache: InMemoryCache[str, int] = InMemoryCache()
        with patch("artistdesk.application.cache.base_cache.time.time", return_value=1000.0):
            await cache.set("a", 1, ttl_seconds=10)
            await cache.set("b", 2, ttl_seconds=100)

        with patch("artistdesk.application.cache.base_cache.time.time", return_value=1050.0):
            assert cache.get_stats()["expired_entries"] == 1
            assert await cache.get("a") is None
            assert await cache.get("b") == 2
            assert await cache.cleanup_expired() == 0

    async def test_cleanup_expired_evicts_unread_entries(self) -> None:
        cache: InMemoryCache[str, int] = InMemoryCache()
        with patch("artistdesk.application.cache.base_cache.time.time", return_value=1000.0):
            await cache.set("artists:list:1:15:aaa", 1, ttl_seconds=10)
            await cache.set("artists:list:1:15:bbb", 2, ttl_seconds=10)
            await cache.set("artists:show:1", 3, ttl_seconds=100)

        with patch("artistdesk.application.cache.base_cache.time.time", return_value=1050.0):
            assert await cache.cleanup_expired() == 2
            assert cache.get_stats() == {
                "total_entries": 1,
                "active_entries": 1,
                "expired_entries": 0,
            }

    async def test_delete_prefix(self) -> None:
        cache: InMemoryCache[str, str] = InMemoryCache()
        await cache.set("artists:list:1", "x")
        await cache.set("artists:list:2", "y")
        await cache.set("artists:show:1", "z")

        assert await cache.delete_prefix("artists:list:") == 2
        assert await cache.get("artists:show:1") == "z"


class TestEntityCache:
    """Test EntityCache keys and read-through."""

    def test_list_key_ignores_filter_order(self) -> None:
        cache = EntityCache("artists")
        assert cache.list_key(1, 15, {"a": 1, "b": 2}) == cache.list_key(1, 15, {"b": 2, "a": 1})
        assert cache.list_key(1, 15, {"a": 1}) != cache.list_key(2, 15, {"a": 1})
        assert cache.list_key(1, 15).startswith("artists:list:1:15:")

    async def test_remember_loads_once(self) -> None:
        cache = EntityCache("artists")
        loader = AsyncMock(return_value={"id": 1})

        assert await cache.remember(1, loader) == {"id": 1}
        assert await cache.remember(1, loader) == {"id": 1}
        loader.assert_awaited_once()

    async def test_none_is_not_cached(self) -> None:
        cache = EntityCache("artists")
        loader = AsyncMock(return_value=None)

        await cache.remember(1, loader)
        await cache.remember(1, loader)
        assert loader.await_count == 2

    async def test_flush_only_touches_own_namespace(self) -> None:
        backend: InMemoryCache[str, object] = InMemoryCache()
        artists = EntityCache("artists", backend=backend)
        users = EntityCache("users", backend=backend)
        await artists.remember(1, AsyncMock(return_value="artist"))
        await users.remember(1, AsyncMock(return_value="user"))

        assert await artists.flush() == 1
        assert await backend.get(users.show_key(1)) == "user"


class TestCacheInvalidationListener:
    """Which cache entries each lifecycle event clears."""

    @pytest.fixture
    async def cache(self) -> EntityCache:
        cache = EntityCache("artists")
        await cache.remember(1, AsyncMock(return_value="one"))
        await cache.remember(2, AsyncMock(return_value="two"))
        await cache.remember_list(1, 15, {}, AsyncMock(return_value=["one", "two"]))
        return cache

    @staticmethod
    async def cached(cache: EntityCache, key: str) -> object:
        return await cache._backend.get(key)

    async def test_deleted_forgets_single_entry_only(self, cache: EntityCache) -> None:
        listener = CacheInvalidationListener({"Artist": cache})
        await listener(LifecycleEvent(LifecycleEventType.DELETED, "Artist", 1))

        assert await self.cached(cache, cache.show_key(1)) is None
        assert await self.cached(cache, cache.show_key(2)) == "two"
        assert await self.cached(cache, cache.list_key(1, 15, {})) is not None

    async def test_list_invalidated_forgets_lists_only(self, cache: EntityCache) -> None:
        listener = CacheInvalidationListener({"Artist": cache})
        await listener(LifecycleEvent(LifecycleEventType.LIST_INVALIDATED, "Artist", 1))

        assert await self.cached(cache, cache.show_key(1)) == "one"
        assert await self.cached(cache, cache.list_key(1, 15, {})) is None

    @pytest.mark.parametrize(
        "event_type",
        [
            LifecycleEventType.CREATED,
            LifecycleEventType.UPDATED,
            LifecycleEventType.RESTORED,
            LifecycleEventType.FORCE_DELETED,
        ],
    )
    async def test_other_events_forget_both(
        self, cache: EntityCache, event_type: LifecycleEventType
    ) -> None:
        listener = CacheInvalidationListener()
        listener.register("Artist", cache)
        await listener(LifecycleEvent(event_type, "Artist", 1))

        assert await self.cached(cache, cache.show_key(1)) is None
        assert await self.cached(cache, cache.list_key(1, 15, {})) is None

    async def test_unknown_entity_type_ignored(self, cache: EntityCache) -> None:
        listener = CacheInvalidationListener({"Artist": cache})
        await listener(LifecycleEvent(LifecycleEventType.UPDATED, "User", 1))

        assert await self.cached(cache, cache.show_key(1)) == "one"
