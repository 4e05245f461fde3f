"""Application settings loaded from environment variables.

Hey future me - every sub-settings class reads its own env prefix (DATABASE_, SECURITY_,
SPOTIFY_, ...) so you can override a single value without touching the rest. Tests build
Settings(...) directly with explicit sub-settings instead of mutating os.environ.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=_ENV_FILE, extra="ignore"
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./artistdesk.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_pre_ping: bool = Field(default=True)
    pool_size: int = Field(default=5, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=1800, ge=60)


class SecuritySettings(BaseSettings):
    """Secrets for password hashing and token encryption."""

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_", env_file=_ENV_FILE, extra="ignore"
    )

    # Hey future me - the Fernet key is DERIVED from app_key (sha256 -> urlsafe b64).
    # Rotating app_key makes every stored OAuth token unreadable, so don't do it casually!
    app_key: str = Field(
        default="change-me-artistdesk-development-key",
        min_length=16,
        description="Secret used to derive the token encryption key",
    )
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)


class SpotifySettings(BaseSettings):
    """Spotify OAuth application credentials."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_", env_file=_ENV_FILE, extra="ignore"
    )

    client_id: str = Field(default="")
    client_secret: str = Field(default="")
    token_url: str = Field(default="https://accounts.spotify.com/api/token")
    revoke_url: str = Field(default="https://accounts.spotify.com/api/token")

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class GoogleSettings(BaseSettings):
    """Google OAuth application credentials."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_", env_file=_ENV_FILE, extra="ignore"
    )

    client_id: str = Field(default="")
    client_secret: str = Field(default="")
    token_url: str = Field(default="https://oauth2.googleapis.com/token")

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class OAuthSettings(BaseSettings):
    """Token lifecycle tuning."""

    model_config = SettingsConfigDict(
        env_prefix="OAUTH_", env_file=_ENV_FILE, extra="ignore"
    )

    refresh_window_minutes: int = Field(
        default=5, ge=0, description="Refresh tokens this many minutes before expiry"
    )
    http_timeout: float = Field(default=10.0, gt=0)


class CacheSettings(BaseSettings):
    """Read-through cache settings."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_", env_file=_ENV_FILE, extra="ignore"
    )

    ttl_seconds: int = Field(default=300, ge=1)


class StorageSettings(BaseSettings):
    """Local storage for staged uploads and media."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_", env_file=_ENV_FILE, extra="ignore"
    )

    root: Path = Field(default=Path("storage"))
    temp_file_expiry_hours: int = Field(default=24, ge=1)

    @property
    def tmp_dir(self) -> Path:
        return self.root / "tmp"

    @property
    def media_dir(self) -> Path:
        return self.root / "media"


class AuditSettings(BaseSettings):
    """Audit stamp behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_", env_file=_ENV_FILE, extra="ignore"
    )

    # Listen up - False keeps the old behaviour where an Admin editing a User leaves
    # created_by/updated_by untouched (stamps only for actors of the entity's own kind).
    stamp_foreign_actors: bool = Field(default=False)


class MaintenanceSettings(BaseSettings):
    """Periodic cleanup worker."""

    model_config = SettingsConfigDict(
        env_prefix="MAINTENANCE_", env_file=_ENV_FILE, extra="ignore"
    )

    enabled: bool = Field(default=True)
    interval_seconds: int = Field(default=3600, ge=1)


class LogSettings(BaseSettings):
    """Logging output."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_", env_file=_ENV_FILE, extra="ignore"
    )

    level: str = Field(default="INFO")
    json_format: bool = Field(default=False)


class Settings(BaseSettings):
    """Root application settings."""

    model_config = SettingsConfigDict(
        env_prefix="ARTISTDESK_", env_file=_ENV_FILE, extra="ignore"
    )

    app_name: str = Field(default="artistdesk")
    debug: bool = Field(default=False)

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    maintenance: MaintenanceSettings = Field(default_factory=MaintenanceSettings)
    log: LogSettings = Field(default_factory=LogSettings)


# Yo, cached so every call site shares ONE Settings instance. Call get_settings.cache_clear()
# in tests if you patched env vars and need a fresh read.
@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
