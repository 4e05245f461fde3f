"""Cache invalidation driven by lifecycle events."""

import logging

from artistdesk.application.cache.entity_cache import EntityCache
from artistdesk.application.events import LifecycleEvent
from artistdesk.domain.entities import LifecycleEventType

logger = logging.getLogger(__name__)


class CacheInvalidationListener:
    """Subscribe this to the LifecycleEventBus.

    DELETED forgets only the single entry (soft delete always comes paired with a
    LIST_INVALIDATED event), LIST_INVALIDATED forgets only lists, everything else both.
    Events for entity types without a registered cache are ignored.
    """

    def __init__(self, caches: dict[str, EntityCache] | None = None) -> None:
        # Keyed by entity label ("Artist", "User", "Admin")
        self._caches: dict[str, EntityCache] = dict(caches or {})

    def register(self, entity_type: str, cache: EntityCache) -> None:
        self._caches[entity_type] = cache

    async def __call__(self, event: LifecycleEvent) -> None:
        cache = self._caches.get(event.entity_type)
        if cache is None:
            return

        if event.type == LifecycleEventType.DELETED:
            await self._forget_single(cache, event)
        elif event.type == LifecycleEventType.LIST_INVALIDATED:
            await cache.forget_lists()
        else:
            await self._forget_single(cache, event)
            await cache.forget_lists()

        logger.debug(
            f"Cache invalidated for {event.type.value} {event.entity_type}#{event.entity_id}",
            extra={"action": "cache_invalidated"},
        )

    @staticmethod
    async def _forget_single(cache: EntityCache, event: LifecycleEvent) -> None:
        if event.entity_id is not None:
            await cache.forget(event.entity_id)
