"""Notification provider interfaces for the notification service.

Hey future me - this is the PORT (interface) for notification channels!
The NotificationService fans a Notification out to every configured provider;
the in-app provider is the only one we ship, but a mail/webhook channel just
needs to implement INotificationProvider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from artistdesk.domain.entities import ActorRef


class NotificationType(str, Enum):
    """Severity-style notification types shown to the acting actor."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationPriority(str, Enum):
    """Priority levels for notifications."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class Notification:
    """Notification payload handed to providers.

    Example:
        Notification(
            type=NotificationType.SUCCESS,
            title="Artist Created",
            message="Artist 'Radiohead' has been created successfully.",
            recipient=ActorRef(ActorType.ADMIN, 1),
            data={"action": "artist_created_success", "artist_id": 5},
        )
    """

    type: NotificationType
    title: str
    message: str
    recipient: ActorRef | None = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime | None = None
    read: bool = False

    def __post_init__(self) -> None:
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = datetime.now(UTC)


@dataclass
class NotificationResult:
    """Result of sending a notification through one provider."""

    success: bool
    provider_name: str
    notification_type: NotificationType
    error: str | None = None
    external_id: str | None = None


class INotificationProvider(ABC):
    """Interface for notification providers.

    Each provider must:
    1. Have a unique name
    2. Declare which notification types it supports (empty list = all)
    3. Implement send() to deliver the notification
    4. Implement is_configured() so the service can skip disabled channels
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this provider (e.g., 'inapp')."""
        pass

    @property
    @abstractmethod
    def supported_types(self) -> list[NotificationType]:
        """List of notification types this provider can handle.

        Return empty list to support ALL types.
        """
        pass

    @abstractmethod
    async def send(self, notification: Notification) -> NotificationResult:
        """Send a notification through this provider."""
        pass

    @abstractmethod
    async def is_configured(self) -> bool:
        """Check if this provider is ready to deliver."""
        pass

    def supports(self, notification_type: NotificationType) -> bool:
        """Check if this provider supports a notification type."""
        supported = self.supported_types
        return len(supported) == 0 or notification_type in supported


__all__ = [
    "NotificationType",
    "NotificationPriority",
    "Notification",
    "NotificationResult",
    "INotificationProvider",
]
