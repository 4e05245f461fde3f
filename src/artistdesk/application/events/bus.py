"""In-process lifecycle event bus.

Hey future me - services publish AFTER commit, never before. A subscriber that blows up
(cache backend gone, bug in a listener) gets logged and skipped; the mutation already
happened and the caller must still get its result.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from artistdesk.domain.entities import ActorRef, LifecycleEventType
from artistdesk.infrastructure.persistence.models import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LifecycleEvent:
    """Something happened to one entity (or to its list views)."""

    type: LifecycleEventType
    entity_type: str
    entity_id: int | None = None
    actor: ActorRef | None = None
    occurred_at: datetime = field(default_factory=utc_now)


LifecycleHandler = Callable[[LifecycleEvent], Awaitable[None] | None]


class LifecycleEventBus:
    """Observer list. Handlers may be sync or async callables."""

    def __init__(self) -> None:
        self._handlers: list[LifecycleHandler] = []

    def subscribe(self, handler: LifecycleHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: LifecycleHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    async def publish(self, event: LifecycleEvent) -> None:
        """Deliver event to every subscriber in subscription order."""
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Lifecycle event handler failed for {event.type.value} "
                    f"{event.entity_type}#{event.entity_id}: {e}",
                    exc_info=True,
                    extra={"action": "lifecycle_event_handler_failed"},
                )

    async def publish_all(self, events: list[LifecycleEvent]) -> None:
        for event in events:
            await self.publish(event)
