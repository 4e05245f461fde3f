"""HTTP boundary: maps domain exceptions to status codes."""

from artistdesk.api.exception_handlers import register_exception_handlers

__all__ = ["register_exception_handlers"]
