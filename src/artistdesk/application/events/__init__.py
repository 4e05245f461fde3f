"""Lifecycle events."""

from artistdesk.application.events.bus import (
    LifecycleEvent,
    LifecycleEventBus,
    LifecycleHandler,
)

__all__ = ["LifecycleEvent", "LifecycleEventBus", "LifecycleHandler"]
