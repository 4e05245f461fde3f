"""Shared logger helpers.

Hey future me - these keep log lines consistent across services and workers.

USAGE:
    from artistdesk.infrastructure.observability.logger_template import (
        log_action,
        log_operation,
        log_worker_health,
    )

    log_action(logger, "artist_created_success", "Artist created", artist_id=5)

    async with log_operation(logger, "maintenance_cycle"):
        await worker.run_once()
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


# Yo, every lifecycle mutation logs through this so the "action" key is ALWAYS present.
# Grep (or query the JSON logs) for action=artist_soft_deleted_success and you get the
# whole audit trail for that kind of change.
def log_action(
    logger: logging.Logger,
    action: str,
    message: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """Log a structured entry tagged with an action code.

    Args:
        logger: Module logger
        action: Machine-readable action code (e.g. "artist_created_success")
        message: Human readable message
        level: Logging level (CRITICAL for alert-worthy attempts)
        **context: Extra structured fields (ids, actor, provider)
    """
    logger.log(level, message, extra={**context, "action": action})


@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[None]:
    """Context manager for logging operation start/end with automatic timing.

    Logs:
    - {operation}.started with context fields
    - {operation}.completed with context + duration_ms
    - {operation}.failed with context + duration_ms + error details (if exception)

    Example:
        >>> async with log_operation(logger, "token_cleanup"):
        ...     await service.cleanup_expired_tokens()
    """
    start = time.time()
    logger.info(f"{operation}.started", extra=context)

    try:
        yield
        duration_ms = int((time.time() - start) * 1000)
        logger.info(
            f"{operation}.completed",
            extra={**context, "duration_ms": duration_ms},
        )
    except Exception as e:
        duration_ms = int((time.time() - start) * 1000)
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": duration_ms,
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise


def log_worker_health(
    logger: logging.Logger,
    worker_name: str,
    cycles_completed: int,
    errors_total: int,
    uptime_seconds: float,
    extra_stats: dict[str, Any] | None = None,
) -> None:
    """Log worker health status in consistent format."""
    log_data = {
        "worker": worker_name,
        "cycles_completed": cycles_completed,
        "errors_total": errors_total,
        "uptime_seconds": int(uptime_seconds),
    }
    if extra_stats:
        log_data.update(extra_stats)

    logger.info("worker.health", extra=log_data)
