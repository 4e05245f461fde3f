"""In-app notification provider storing notifications in the database.

Hey future me - this is where "Artist Created" / "moved to trash" toasts come from.
It opens its OWN session per notification (session_factory), so a failing insert here can
never roll back the lifecycle transaction that triggered it, and the lifecycle session is
already committed by the time we get called anyway.
"""

import logging
from collections.abc import Callable
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from artistdesk.domain.entities import ActorRef
from artistdesk.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationResult,
    NotificationType,
)
from artistdesk.infrastructure.persistence.models import NotificationModel, utc_now
from artistdesk.infrastructure.persistence.repositories import NotificationRepository

logger = logging.getLogger(__name__)


class InAppNotificationProvider(INotificationProvider):
    """In-app notification provider storing notifications in database."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        enabled: bool = True,
        max_age_days: int = 30,
    ) -> None:
        """Initialize with a session factory.

        Args:
            session_factory: Callable returning a new AsyncSession (async_sessionmaker)
            enabled: Toggle for the channel
            max_age_days: Notifications older than this are purged on insert
        """
        self._session_factory = session_factory
        self._enabled = enabled
        self._max_age_days = max_age_days

    @property
    def name(self) -> str:
        """Provider name."""
        return "inapp"

    @property
    def supported_types(self) -> list[NotificationType]:
        """In-app supports all notification types."""
        return []

    async def is_configured(self) -> bool:
        return self._enabled

    async def send(self, notification: Notification) -> NotificationResult:
        """Store notification in database."""
        if not self._enabled:
            return NotificationResult(
                success=False,
                provider_name=self.name,
                notification_type=notification.type,
                error="In-app notifications disabled",
            )

        recipient = notification.recipient
        async with self._session_factory() as session:
            repo = NotificationRepository(session)
            model = await repo.add(
                NotificationModel(
                    type=notification.type.value,
                    title=notification.title[:500],
                    message=notification.message[:5000],
                    priority=notification.priority.value,
                    data=notification.data or {},
                    recipient_type=recipient.actor_type.value if recipient else None,
                    recipient_id=recipient.actor_id if recipient else None,
                    read=notification.read,
                    created_at=notification.timestamp or utc_now(),
                )
            )
            await repo.delete_older_than(utc_now() - timedelta(days=self._max_age_days))
            await session.commit()

        logger.debug(
            f"[NOTIFICATION] In-app stored: {notification.type.value} - "
            f"{notification.title[:50]} (id={model.id[:8]})"
        )
        return NotificationResult(
            success=True,
            provider_name=self.name,
            notification_type=notification.type,
            external_id=model.id,
        )

    async def get_notifications(
        self, recipient: ActorRef, unread_only: bool = False, limit: int = 50
    ) -> list[NotificationModel]:
        """List stored notifications for an actor, newest first."""
        async with self._session_factory() as session:
            return await NotificationRepository(session).list_for(
                recipient, unread_only=unread_only, limit=limit
            )
