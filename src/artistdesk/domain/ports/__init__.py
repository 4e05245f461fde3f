"""Domain ports (interfaces implemented by infrastructure)."""

from artistdesk.domain.ports.media import IPasswordResetBroker, ITemporaryFileMover, MediaOwner
from artistdesk.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)

__all__ = [
    "INotificationProvider",
    "IPasswordResetBroker",
    "ITemporaryFileMover",
    "MediaOwner",
    "Notification",
    "NotificationPriority",
    "NotificationResult",
    "NotificationType",
]
