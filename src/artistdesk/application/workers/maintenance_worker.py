"""Maintenance Worker - periodic cleanup of expired tokens and staged uploads.

Hey future me - everything this worker touches is ALREADY past a time threshold (tokens past
expires_at, uploads past their 24h), so it can run next to live traffic and running it twice
in a row is harmless. One cycle:

1. OAuthCredentialService.cleanup_expired_tokens() -> active tokens past expiry deactivated
2. TemporaryFileService.cleanup_expired_temporary_files() -> staged uploads deleted
3. TemporaryFileService.cleanup_empty_tmp_folders() -> leftover tmp/<uuid>/ dirs removed
4. EntityCache.cleanup_expired() -> expired show/list entries evicted from every cache

Each step gets its own session so a failing step doesn't roll back the others.
"""

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from artistdesk.application.cache import EntityCache
from artistdesk.application.services.oauth_credential_service import OAuthCredentialService
from artistdesk.application.services.temporary_file_service import TemporaryFileService
from artistdesk.config import Settings
from artistdesk.infrastructure.integrations import OAuthProviderRegistry
from artistdesk.infrastructure.observability.logger_template import (
    log_operation,
    log_worker_health,
)
from artistdesk.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)


class MaintenanceWorker:
    """Runs the cleanup cycle every interval_seconds.

    Lifecycle:
    - Created at app startup with the shared session factory
    - Runs as asyncio task via start()
    - Stopped via stop(), which also wakes it from its sleep
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        providers: OAuthProviderRegistry | None = None,
        interval_seconds: int | None = None,
        caches: list[EntityCache] | None = None,
    ) -> None:
        """Initialize the maintenance worker.

        Args:
            session_factory: Factory for creating DB sessions
            settings: Application settings (storage paths, OAuth config)
            providers: Provider registry handed to the credential service
            interval_seconds: Seconds between cycles (default: settings.maintenance)
            caches: Entity caches swept for expired entries each cycle
        """
        self._session_factory = session_factory
        self._settings = settings
        self._providers = providers
        self._interval = interval_seconds or settings.maintenance.interval_seconds
        self._caches = list(caches or [])
        self._running = False
        self._stop_event = asyncio.Event()
        self._started_at: float | None = None
        self._stats: dict[str, Any] = {
            "cycles_completed": 0,
            "errors_total": 0,
            "tokens_deactivated_total": 0,
            "temp_files_removed_total": 0,
            "tmp_folders_removed_total": 0,
            "cache_entries_evicted_total": 0,
            "last_run_at": None,
            "last_result": None,
        }

    async def run_once(self) -> dict[str, int]:
        """Run one maintenance cycle.

        Returns:
            Counts per step: tokens_deactivated, temp_files_removed, tmp_folders_removed,
            cache_entries_evicted
        """
        set_correlation_id()
        result = {
            "tokens_deactivated": 0,
            "temp_files_removed": 0,
            "tmp_folders_removed": 0,
            "cache_entries_evicted": 0,
        }

        async with log_operation(logger, "maintenance_cycle"):
            try:
                async with self._session_factory() as session:
                    credentials = OAuthCredentialService(session, self._settings, self._providers)
                    result["tokens_deactivated"] = await credentials.cleanup_expired_tokens()
            except Exception as e:
                self._stats["errors_total"] += 1
                logger.exception(f"Expired token cleanup failed: {e}")

            try:
                async with self._session_factory() as session:
                    temp_files = TemporaryFileService(session, self._settings.storage)
                    result["temp_files_removed"] = await temp_files.cleanup_expired_temporary_files()
                    result["tmp_folders_removed"] = await temp_files.cleanup_empty_tmp_folders()
            except Exception as e:
                self._stats["errors_total"] += 1
                logger.exception(f"Temporary file cleanup failed: {e}")

            for cache in self._caches:
                try:
                    result["cache_entries_evicted"] += await cache.cleanup_expired()
                except Exception as e:
                    self._stats["errors_total"] += 1
                    logger.exception(f"Cache sweep failed for {cache.namespace}: {e}")

        self._stats["cycles_completed"] += 1
        self._stats["tokens_deactivated_total"] += result["tokens_deactivated"]
        self._stats["temp_files_removed_total"] += result["temp_files_removed"]
        self._stats["tmp_folders_removed_total"] += result["tmp_folders_removed"]
        self._stats["cache_entries_evicted_total"] += result["cache_entries_evicted"]
        self._stats["last_run_at"] = datetime.now(UTC)
        self._stats["last_result"] = dict(result)
        return result

    async def start(self) -> None:
        """Run cycles until stop() is called."""
        self._running = True
        self._stop_event.clear()
        self._started_at = time.monotonic()
        logger.info(f"MaintenanceWorker started (interval={self._interval}s)")

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                # Log but don't crash - we'll try again next cycle
                self._stats["errors_total"] += 1
                logger.exception(f"MaintenanceWorker error: {e}")

            log_worker_health(
                logger,
                "maintenance",
                self._stats["cycles_completed"],
                self._stats["errors_total"],
                time.monotonic() - self._started_at,
            )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                continue

        logger.info("MaintenanceWorker stopped")

    def stop(self) -> None:
        """Signal the worker to stop."""
        self._running = False
        self._stop_event.set()
        logger.info("MaintenanceWorker stopping...")

    @property
    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> dict[str, Any]:
        """Get worker statistics."""
        return {
            **self._stats,
            "running": self._running,
            "interval_seconds": self._interval,
            "caches": [cache.get_stats() for cache in self._caches],
        }
