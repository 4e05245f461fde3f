"""SQLAlchemy ORM models for artistdesk."""

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, ClassVar

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from artistdesk.domain.entities import ActorRef, ActorType
from artistdesk.infrastructure.persistence.encryption import EncryptedText


# Hey future me, utc_now() ensures ALL timestamps are UTC! Never use datetime.now() without
# timezone - that's "naive" datetime and causes bugs when servers are in different timezones.
def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! When we store UTC datetimes, they come
# back as "naive" (no tzinfo). ALWAYS use this when comparing datetimes from the DB with
# datetime.now(UTC) to avoid "can't compare offset-naive and offset-aware" TypeError!
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


# Signed 64-bit, the widest INTEGER both SQLite and Postgres BIGINT accept
DB_INT_MIN = -(2**63)
DB_INT_MAX = 2**63 - 1


def parse_db_int(value: Any) -> int | None:
    """Int from an int or ASCII digit string, None when it can't be bound as a DB integer.

    str.isdigit() also says yes to "²" and other Unicode digits that int() rejects, so only
    plain ASCII digits (optionally signed) count.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        digits = text[1:] if text[:1] in ("-", "+") else text
        if not (digits.isascii() and digits.isdigit()):
            return None
        number = int(text)
    if not DB_INT_MIN <= number <= DB_INT_MAX:
        return None
    return number


class Base(DeclarativeBase):
    """Base class for all ORM models.

    All models inherit from this to use the same metadata registry.
    """

    pass


# =============================================================================
# MIXINS
# =============================================================================
# Yo, timestamps use PYTHON-side defaults (default=utc_now), not server_default. With async
# sessions a server-generated value would be expired after flush and the next attribute
# access would try a lazy load outside the greenlet (MissingGreenlet). Python-side values are
# written straight onto the instance.
# =============================================================================


class TimestampMixin:
    """created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


class SoftDeleteStampMixin(TimestampMixin):
    """Soft-delete marker plus audit stamps shared by actors and artists.

    Stamp columns hold the acting actor's id. Which actor kind is allowed to stamp is
    decided by the lifecycle service (see stamp_actor_type).
    """

    # Actor kind whose ids go into the *_by columns
    stamp_actor_type: ClassVar[ActorType] = ActorType.USER
    # Human label for logs, notifications and error messages
    entity_label: ClassVar[str] = "Record"

    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deleted_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    restored_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    restored_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True, index=True
    )

    def trashed(self) -> bool:
        """Check whether the record is soft-deleted."""
        return self.deleted_at is not None

    @property
    def media_type(self) -> str:
        """Owner type used in media rows."""
        return self.entity_label.lower()


class ActorColumnsMixin:
    """Identity columns shared by users and admins (separate tables!)."""

    actor_type: ClassVar[ActorType]

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    # bcrypt hash, NEVER serialized (see to_dict)
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_verified_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    spotify_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    google_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # Listen, emails are stored lower-cased so the unique index is case-insensitive in effect.
    # Lookups must lower() their input too (repositories do).
    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        return value.strip().lower()

    @property
    def actor_ref(self) -> ActorRef:
        return ActorRef(self.actor_type, self.id)  # type: ignore[attr-defined]

    def to_dict(self) -> dict[str, Any]:
        """Serializable view of the actor (password excluded)."""
        return {
            "id": self.id,  # type: ignore[attr-defined]
            "name": self.name,
            "email": self.email,
            "email_verified_at": self.email_verified_at,
            "spotify_id": self.spotify_id,
            "google_id": self.google_id,
            "deleted_at": self.deleted_at,  # type: ignore[attr-defined]
            "created_at": self.created_at,  # type: ignore[attr-defined]
            "updated_at": self.updated_at,  # type: ignore[attr-defined]
        }


# =============================================================================
# ACTORS
# =============================================================================


class UserModel(Base, ActorColumnsMixin, SoftDeleteStampMixin):
    """End-user account (authenticates on the "web" guard)."""

    __tablename__ = "users"

    actor_type: ClassVar[ActorType] = ActorType.USER
    stamp_actor_type: ClassVar[ActorType] = ActorType.USER
    entity_label: ClassVar[str] = "User"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class AdminModel(Base, ActorColumnsMixin, SoftDeleteStampMixin):
    """Back-office operator (authenticates on the "admin" guard)."""

    __tablename__ = "admins"

    actor_type: ClassVar[ActorType] = ActorType.ADMIN
    stamp_actor_type: ClassVar[ActorType] = ActorType.ADMIN
    entity_label: ClassVar[str] = "Admin"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


# Tokenables / role holders resolve (type, id) through this registry instead of inheritance
ACTOR_MODELS: dict[ActorType, type[UserModel] | type[AdminModel]] = {
    ActorType.USER: UserModel,
    ActorType.ADMIN: AdminModel,
}


# =============================================================================
# ARTISTS
# =============================================================================


class ArtistModel(Base, SoftDeleteStampMixin):
    """Artist record, optionally owned by a user."""

    __tablename__ = "artists"

    stamp_actor_type: ClassVar[ActorType] = ActorType.USER
    entity_label: ClassVar[str] = "Artist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Hey future me - SET NULL keeps the artist around when its owner is force-deleted.
    # UserRepository.force_delete() also nulls it explicitly (SQLite without FK pragma!).
    owner_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    spotify_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    popularity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    followers_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "popularity IS NULL OR (popularity >= 0 AND popularity <= 100)",
            name="ck_artists_popularity_range",
        ),
        CheckConstraint(
            "followers_count IS NULL OR followers_count >= 0",
            name="ck_artists_followers_non_negative",
        ),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "spotify_id": self.spotify_id,
            "name": self.name,
            "popularity": self.popularity,
            "followers_count": self.followers_count,
            "deleted_at": self.deleted_at,
            "restored_at": self.restored_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


# =============================================================================
# ROLES & PERMISSIONS (guard scoped)
# =============================================================================
# Listen up - guard_name is part of a role's IDENTITY. "admin" on the web guard and "admin"
# on the admin guard are two different rows. Holders are referenced as (model_type, model_id)
# because users and admins live in different tables.
# =============================================================================

role_has_permissions = Table(
    "role_has_permissions",
    Base.metadata,
    Column(
        "permission_id",
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)

model_has_roles = Table(
    "model_has_roles",
    Base.metadata,
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("model_type", String(16), primary_key=True),
    Column("model_id", Integer, primary_key=True),
    Index("ix_model_has_roles_model", "model_type", "model_id"),
)

model_has_permissions = Table(
    "model_has_permissions",
    Base.metadata,
    Column(
        "permission_id",
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("model_type", String(16), primary_key=True),
    Column("model_id", Integer, primary_key=True),
    Index("ix_model_has_permissions_model", "model_type", "model_id"),
)


class PermissionModel(Base, TimestampMixin):
    """Atomic authorization unit, e.g. "artists.delete" on the admin guard."""

    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    guard_name: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("name", "guard_name", name="uq_permissions_name_guard"),
    )


class RoleModel(Base, TimestampMixin):
    """Named bundle of permissions within one guard."""

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    guard_name: Mapped[str] = mapped_column(String(32), nullable=False)

    # selectin so permissions are loaded eagerly - no lazy loads in async code
    permissions: Mapped[list[PermissionModel]] = relationship(
        secondary=role_has_permissions, lazy="selectin"
    )

    __table_args__ = (UniqueConstraint("name", "guard_name", name="uq_roles_name_guard"),)


# =============================================================================
# OAUTH TOKENS
# =============================================================================


class OAuthTokenModel(Base, TimestampMixin):
    """OAuth credentials for one (actor, provider) pair.

    Hey future me - the unique triple (tokenable_type, tokenable_id, provider) is THE
    concurrency boundary: a second store_credentials() for the same pair updates this row
    in place. access_token/refresh_token are EncryptedText, so reading them back yields
    plaintext while the DB only ever holds Fernet ciphertext.
    """

    __tablename__ = "oauth_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tokenable_type: Mapped[str] = mapped_column(String(16), nullable=False)
    tokenable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    access_token: Mapped[str] = mapped_column(EncryptedText, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(EncryptedText, nullable=True)
    # NULL = token never expires
    expires_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    scopes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    provider_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    last_refreshed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tokenable_type", "tokenable_id", "provider", name="uq_oauth_tokens_owner_provider"
        ),
        Index("ix_oauth_tokens_expires", "expires_at"),
        Index("ix_oauth_tokens_active", "is_active"),
    )

    @property
    def tokenable(self) -> ActorRef:
        return ActorRef(ActorType(self.tokenable_type), self.tokenable_id)

    # Hey future me - EXPIRED and NEEDS REFRESH are different questions! A token 3 minutes
    # from expiry is not expired yet but already needs a refresh. NULL expires_at = neither.
    def is_expired(self) -> bool:
        """Check if token is past its expiration time."""
        if self.expires_at is None:
            return False
        return utc_now() >= ensure_utc_aware(self.expires_at)

    def needs_refresh(self, window_minutes: int = 5) -> bool:
        """Check if token is inside the proactive refresh window."""
        if self.expires_at is None:
            return False
        threshold = ensure_utc_aware(self.expires_at) - timedelta(minutes=window_minutes)
        return utc_now() >= threshold

    def has_scope(self, scope: str) -> bool:
        return scope in (self.scopes or [])

    def token_type(self) -> str:
        return "Bearer"


# =============================================================================
# UPLOAD STAGING & MEDIA
# =============================================================================


class TemporaryFileModel(Base):
    """Upload staged in tmp/<folder>/ until it is moved to a media collection."""

    __tablename__ = "temporary_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    folder: Mapped[str] = mapped_column(
        String(36), nullable=False, unique=True, default=lambda: str(uuid.uuid4())
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(127), nullable=True)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    def is_expired(self) -> bool:
        return utc_now() >= ensure_utc_aware(self.expires_at)


class MediaModel(Base):
    """File attached to a user/admin/artist collection."""

    __tablename__ = "media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    model_type: Mapped[str] = mapped_column(String(32), nullable=False)
    model_id: Mapped[int] = mapped_column(Integer, nullable=False)
    collection_name: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(127), nullable=True)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        Index("ix_media_owner_collection", "model_type", "model_id", "collection_name"),
    )


# =============================================================================
# NOTIFICATIONS (in-app)
# =============================================================================


class NotificationModel(Base):
    """Notification stored for the UI to display."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="normal")
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    recipient_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    recipient_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    read: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )

    __table_args__ = (
        Index("ix_notifications_recipient", "recipient_type", "recipient_id"),
    )
