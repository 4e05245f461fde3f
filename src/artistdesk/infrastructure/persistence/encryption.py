"""Encrypted column type for secrets stored at rest (OAuth tokens).

Hey future me - tokens are Fernet-encrypted in the DB and transparently decrypted when the
row is loaded, so repository/service code only ever sees plaintext. The Fernet key is
derived from SECURITY_APP_KEY with SHA-256 (Fernet wants 32 url-safe base64 bytes).
Database() calls configure_token_encryption() on startup; anything that loads rows before
that falls back to get_settings().
"""

import base64
import hashlib
import logging

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import Text
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator

from artistdesk.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_cipher: Fernet | None = None


def derive_fernet_key(app_key: str) -> bytes:
    """Derive a Fernet-compatible key from the application secret."""
    key_material = hashlib.sha256(f"artistdesk_tokens_{app_key}".encode()).digest()
    return base64.urlsafe_b64encode(key_material)


def configure_token_encryption(app_key: str) -> None:
    """Install the process-wide cipher used by EncryptedText columns."""
    global _cipher
    _cipher = Fernet(derive_fernet_key(app_key))


def get_token_cipher() -> Fernet:
    """Return the configured cipher, building it from settings on first use."""
    if _cipher is None:
        from artistdesk.config import get_settings

        configure_token_encryption(get_settings().security.app_key)
    assert _cipher is not None
    return _cipher


class EncryptedText(TypeDecorator[str]):
    """Text column that stores Fernet ciphertext and returns plaintext."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: str | None, dialect: Dialect) -> str | None:
        if value is None:
            return None
        return get_token_cipher().encrypt(value.encode("utf-8")).decode("ascii")

    def process_result_value(self, value: str | None, dialect: Dialect) -> str | None:
        if value is None:
            return None
        try:
            return get_token_cipher().decrypt(value.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            # Wrong key (rotated SECURITY_APP_KEY?) - don't hand garbage to the provider
            logger.error("Failed to decrypt stored secret", extra={"action": "token_decrypt_failed"})
            raise ConfigurationError(
                "Stored credential could not be decrypted. Was SECURITY_APP_KEY changed?"
            ) from e
