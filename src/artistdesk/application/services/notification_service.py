"""Notification service for sending notifications through multiple providers.

Hey future me - lifecycle services call success()/warning() AFTER their commit. This
service must NEVER raise: a broken notification channel can't undo (or hide) an artist
that was already created. Everything is logged with the [NOTIFICATION] prefix.

Usage:
    notifications = NotificationService([InAppNotificationProvider(db.session_factory)])
    await notifications.success(actor.ref, "Artist Created", "Artist 'Radiohead' ...")
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from artistdesk.domain.entities import ActorRef
from artistdesk.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)

logger = logging.getLogger(__name__)


class NotificationService:
    """Fans notifications out to every configured provider in parallel.

    Without providers it runs in logging-only mode (handy for tests and CLI use).
    """

    def __init__(self, providers: list[INotificationProvider] | None = None) -> None:
        self._providers = list(providers or [])

    def add_provider(self, provider: INotificationProvider) -> None:
        self._providers.append(provider)

    async def _configured_providers(self) -> list[INotificationProvider]:
        configured: list[INotificationProvider] = []
        for provider in self._providers:
            try:
                if await provider.is_configured():
                    configured.append(provider)
            except Exception as e:
                logger.warning(f"[NOTIFICATION] Failed to check provider {provider.name}: {e}")
        return configured

    async def send_notification(
        self,
        notification_type: NotificationType,
        title: str,
        message: str,
        recipient: ActorRef | None = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Send notification to all configured providers.

        Returns:
            True if at least one provider succeeded (or logging-only mode)
        """
        notification = Notification(
            type=notification_type,
            title=title,
            message=message,
            recipient=recipient,
            priority=priority,
            data=data or {},
            timestamp=datetime.now(UTC),
        )

        logger.info(
            f"[NOTIFICATION] {notification_type.value}: {title} - {message[:100]}",
            extra={
                "recipient": str(recipient) if recipient else None,
                "action": (data or {}).get("action"),
            },
        )

        try:
            providers = await self._configured_providers()
            if not providers:
                return True

            results = await self._send_to_providers(notification, providers)
        except Exception as e:
            # Last line of defence, the caller's operation already succeeded
            logger.error(f"[NOTIFICATION] Dispatch failed: {e}", exc_info=True)
            return False

        successes = sum(1 for r in results if r.success)
        failures = len(results) - successes
        if failures > 0:
            failed_providers = [r.provider_name for r in results if not r.success]
            logger.warning(
                f"[NOTIFICATION] {successes}/{len(results)} providers succeeded, "
                f"failed: {failed_providers}"
            )

        return successes > 0 or not results

    async def _send_to_providers(
        self, notification: Notification, providers: list[INotificationProvider]
    ) -> list[NotificationResult]:
        """Send notification to multiple providers in parallel."""
        targets = [p for p in providers if p.supports(notification.type)]
        if not targets:
            return []

        results = await asyncio.gather(
            *(self._send_to_provider(p, notification) for p in targets),
            return_exceptions=True,
        )

        final_results: list[NotificationResult] = []
        for provider, result in zip(targets, results, strict=True):
            if isinstance(result, NotificationResult):
                final_results.append(result)
            else:
                final_results.append(
                    NotificationResult(
                        success=False,
                        provider_name=provider.name,
                        notification_type=notification.type,
                        error=str(result),
                    )
                )
        return final_results

    async def _send_to_provider(
        self, provider: INotificationProvider, notification: Notification
    ) -> NotificationResult:
        """Send to a single provider with error handling."""
        try:
            return await provider.send(notification)
        except Exception as e:
            logger.error(f"[NOTIFICATION] Provider {provider.name} error: {e}")
            return NotificationResult(
                success=False,
                provider_name=provider.name,
                notification_type=notification.type,
                error=str(e),
            )

    # =========================================================================
    # CONVENIENCE METHODS
    # =========================================================================

    async def success(
        self, recipient: ActorRef | None, title: str, message: str, **data: Any
    ) -> bool:
        return await self.send_notification(
            NotificationType.SUCCESS, title, message, recipient=recipient, data=data
        )

    async def info(
        self, recipient: ActorRef | None, title: str, message: str, **data: Any
    ) -> bool:
        return await self.send_notification(
            NotificationType.INFO, title, message, recipient=recipient, data=data
        )

    async def warning(
        self, recipient: ActorRef | None, title: str, message: str, **data: Any
    ) -> bool:
        return await self.send_notification(
            NotificationType.WARNING,
            title,
            message,
            recipient=recipient,
            priority=NotificationPriority.HIGH,
            data=data,
        )

    async def error(
        self, recipient: ActorRef | None, title: str, message: str, **data: Any
    ) -> bool:
        return await self.send_notification(
            NotificationType.ERROR,
            title,
            message,
            recipient=recipient,
            priority=NotificationPriority.HIGH,
            data=data,
        )
