"""Observability infrastructure for structured logging."""

from artistdesk.infrastructure.observability.logger_template import (
    log_action,
    log_operation,
    log_worker_health,
)
from artistdesk.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "configure_logging",
    "get_correlation_id",
    "log_action",
    "log_operation",
    "log_worker_health",
    "set_correlation_id",
]
