"""Password hashing with bcrypt."""

import logging

import bcrypt

from artistdesk.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes (newer releases refuse longer input)
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Hashes and verifies actor passwords."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a plain text password.

        Raises:
            ValidationError: If the password is empty or longer than bcrypt accepts
        """
        if not password:
            raise ValidationError("Password cannot be empty")
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise ValidationError(f"Password exceeds {BCRYPT_MAX_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str | None) -> bool:
        """Check a plain text password against a stored hash."""
        if not password or not hashed:
            return False
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except ValueError:
            # Not a bcrypt hash at all
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False

    @staticmethod
    def is_hashed(value: str) -> bool:
        return value.startswith(("$2a$", "$2b$", "$2y$"))
