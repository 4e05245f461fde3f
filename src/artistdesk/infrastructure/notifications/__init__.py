"""Notification provider implementations."""

from artistdesk.infrastructure.notifications.inapp_provider import InAppNotificationProvider

__all__ = ["InAppNotificationProvider"]
