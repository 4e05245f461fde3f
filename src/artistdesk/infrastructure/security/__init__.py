"""Security helpers."""

from artistdesk.infrastructure.security.passwords import PasswordHasher

__all__ = ["PasswordHasher"]
