"""Persistence layer: database, ORM models and repositories."""

from artistdesk.infrastructure.persistence.database import Database
from artistdesk.infrastructure.persistence.models import (
    ACTOR_MODELS,
    AdminModel,
    ArtistModel,
    Base,
    MediaModel,
    NotificationModel,
    OAuthTokenModel,
    PermissionModel,
    RoleModel,
    TemporaryFileModel,
    UserModel,
    ensure_utc_aware,
    utc_now,
)

__all__ = [
    "ACTOR_MODELS",
    "AdminModel",
    "ArtistModel",
    "Base",
    "Database",
    "MediaModel",
    "NotificationModel",
    "OAuthTokenModel",
    "PermissionModel",
    "RoleModel",
    "TemporaryFileModel",
    "UserModel",
    "ensure_utc_aware",
    "utc_now",
]
