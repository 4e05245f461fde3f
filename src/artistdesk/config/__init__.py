"""Configuration module for artistdesk."""

from .settings import (
    AuditSettings,
    CacheSettings,
    DatabaseSettings,
    GoogleSettings,
    LogSettings,
    MaintenanceSettings,
    OAuthSettings,
    SecuritySettings,
    Settings,
    SpotifySettings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "AuditSettings",
    "CacheSettings",
    "DatabaseSettings",
    "GoogleSettings",
    "LogSettings",
    "MaintenanceSettings",
    "OAuthSettings",
    "SecuritySettings",
    "Settings",
    "SpotifySettings",
    "StorageSettings",
    "get_settings",
]
