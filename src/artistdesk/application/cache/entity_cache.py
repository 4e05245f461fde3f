"""Read-through cache for entity show/list results."""

import hashlib
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from artistdesk.application.cache.base_cache import BaseCache, InMemoryCache

logger = logging.getLogger(__name__)


class EntityCache:
    """Namespaced cache for one entity type (e.g. "artists").

    Keys:
        <ns>:show:<id>
        <ns>:list:<page>:<per_page>:<filters-hash>

    Hey future me - the filters hash is computed from the JSON of the raw filter dict with
    sorted keys, so {"a": 1, "b": 2} and {"b": 2, "a": 1} share an entry.
    """

    def __init__(
        self,
        namespace: str,
        ttl_seconds: int = 300,
        backend: BaseCache[str, Any] | None = None,
    ) -> None:
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds
        self._backend: BaseCache[str, Any] = backend if backend is not None else InMemoryCache()

    def show_key(self, entity_id: int) -> str:
        return f"{self.namespace}:show:{entity_id}"

    def list_prefix(self) -> str:
        return f"{self.namespace}:list:"

    def list_key(self, page: int, per_page: int, filters: dict[str, Any] | None = None) -> str:
        encoded = json.dumps(filters or {}, sort_keys=True, default=str)
        digest = hashlib.md5(encoded.encode("utf-8"), usedforsecurity=False).hexdigest()
        return f"{self.list_prefix()}{page}:{per_page}:{digest}"

    async def remember(self, entity_id: int, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Return cached show result or load and store it."""
        return await self._remember(self.show_key(entity_id), loader)

    async def remember_list(
        self,
        page: int,
        per_page: int,
        filters: dict[str, Any] | None,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return cached list page or load and store it."""
        return await self._remember(self.list_key(page, per_page, filters), loader)

    async def _remember(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        cached = await self._backend.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached
        value = await loader()
        if value is not None:
            await self._backend.set(key, value, ttl_seconds=self.ttl_seconds)
        return value

    async def forget(self, entity_id: int) -> bool:
        return await self._backend.delete(self.show_key(entity_id))

    async def forget_lists(self) -> int:
        return await self._backend.delete_prefix(self.list_prefix())

    async def flush(self) -> int:
        return await self._backend.delete_prefix(f"{self.namespace}:")

    # Hey future me - list keys for filter combos nobody asks for again are only evicted
    # by a sweep. MaintenanceWorker calls this every cycle.
    async def cleanup_expired(self) -> int:
        return await self._backend.cleanup_expired()

    def get_stats(self) -> dict[str, Any]:
        return {"namespace": self.namespace, **self._backend.get_stats()}
