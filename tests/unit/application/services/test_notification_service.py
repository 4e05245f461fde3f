"""Unit tests for NotificationService.

Hey future me - these tests verify the notification service never raises!
Tests are split into:
1. Logging-only mode (no providers)
2. Provider fan-out (mock providers, partial failures)
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from artistdesk.application.services.notification_service import NotificationService
from artistdesk.domain.entities import ActorRef, ActorType
from artistdesk.domain.ports.notification import (
    INotificationProvider,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)


def make_provider(
    name: str,
    success: bool = True,
    configured: bool = True,
    supported: list[NotificationType] | None = None,
) -> MagicMock:
    provider = MagicMock(spec=INotificationProvider)
    provider.name = name
    provider.is_configured = AsyncMock(return_value=configured)
    provider.supports = MagicMock(
        side_effect=lambda t: not supported or t in supported
    )
    provider.send = AsyncMock(
        return_value=NotificationResult(
            success=success,
            provider_name=name,
            notification_type=NotificationType.SUCCESS,
            error=None if success else "nope",
        )
    )
    return provider


class TestLoggingOnlyMode:
    """NotificationService without providers."""

    @pytest.fixture
    def service(self) -> NotificationService:
        return NotificationService()

    @pytest.fixture
    def mock_logger(self) -> MagicMock:
        return MagicMock(spec=logging.Logger)

    async def test_success_is_logged(
        self, service: NotificationService, mock_logger: MagicMock
    ) -> None:
        """Test success() logs with the [NOTIFICATION] prefix."""
        with patch(
            "artistdesk.application.services.notification_service.logger", mock_logger
        ):
            result = await service.success(
                ActorRef(ActorType.USER, 1),
                "Artist Created",
                "Artist 'Radiohead' has been created successfully.",
                action="artist_created_success",
            )

        assert result is True
        mock_logger.info.assert_called_once()
        message = mock_logger.info.call_args[0][0]
        assert "[NOTIFICATION]" in message
        assert "Artist Created" in message
        assert mock_logger.info.call_args.kwargs["extra"]["action"] == "artist_created_success"
        assert mock_logger.info.call_args.kwargs["extra"]["recipient"] == "user:1"

    async def test_long_messages_are_truncated_in_log(
        self, service: NotificationService, mock_logger: MagicMock
    ) -> None:
        """Test only the first 100 characters of the message reach the log line."""
        with patch(
            "artistdesk.application.services.notification_service.logger", mock_logger
        ):
            await service.info(None, "Title", "x" * 500)

        assert "x" * 101 not in mock_logger.info.call_args[0][0]


class TestProviderFanOut:
    """NotificationService with providers."""

    async def test_all_providers_receive_notification(self) -> None:
        """Test every configured provider gets the same notification."""
        first, second = make_provider("first"), make_provider("second")
        service = NotificationService([first, second])

        assert await service.warning(ActorRef(ActorType.ADMIN, 3), "Deleted", "gone") is True

        for provider in (first, second):
            notification = provider.send.await_args.args[0]
            assert notification.type == NotificationType.WARNING
            assert notification.priority == NotificationPriority.HIGH
            assert notification.recipient == ActorRef(ActorType.ADMIN, 3)

    async def test_partial_failure_still_succeeds(self) -> None:
        """Test one failing provider doesn't fail the whole send."""
        service = NotificationService([make_provider("ok"), make_provider("bad", success=False)])
        assert await service.success(None, "Title", "Body") is True

    async def test_all_providers_failing(self) -> None:
        """Test False is returned when no provider delivered."""
        broken = make_provider("broken")
        broken.send = AsyncMock(side_effect=RuntimeError("smtp down"))
        service = NotificationService([broken])

        assert await service.error(None, "Title", "Body") is False

    async def test_unconfigured_providers_are_skipped(self) -> None:
        """Test disabled providers are never asked to send."""
        disabled = make_provider("disabled", configured=False)
        service = NotificationService([disabled])

        assert await service.success(None, "Title", "Body") is True
        disabled.send.assert_not_awaited()

    async def test_is_configured_raising_skips_provider(self) -> None:
        """Test a provider whose health check blows up is treated as unconfigured."""
        flaky = make_provider("flaky")
        flaky.is_configured = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = make_provider("healthy")
        service = NotificationService([flaky, healthy])

        assert await service.success(None, "Title", "Body") is True
        flaky.send.assert_not_awaited()
        healthy.send.assert_awaited_once()

    async def test_type_filtering(self) -> None:
        """Test providers only get the types they support."""
        errors_only = make_provider("errors", supported=[NotificationType.ERROR])
        service = NotificationService()
        service.add_provider(errors_only)

        await service.success(None, "Title", "Body")
        errors_only.send.assert_not_awaited()

        await service.error(None, "Title", "Body")
        errors_only.send.assert_awaited_once()
