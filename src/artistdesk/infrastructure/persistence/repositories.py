"""Repository implementations for persisted entities."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from artistdesk.domain.entities import ActorRef, ActorType, GuardName, guard_for
from artistdesk.domain.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationError,
)

from .models import (
    AdminModel,
    ArtistModel,
    MediaModel,
    NotificationModel,
    OAuthTokenModel,
    PermissionModel,
    RoleModel,
    SoftDeleteStampMixin,
    TemporaryFileModel,
    UserModel,
    model_has_permissions,
    model_has_roles,
    parse_db_int,
    role_has_permissions,
    utc_now,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=SoftDeleteStampMixin)
T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a paginated query."""

    items: list[T]
    total: int
    page: int
    per_page: int
    filters: dict[str, Any] = field(default_factory=dict)

    @property
    def last_page(self) -> int:
        if self.total == 0:
            return 1
        return (self.total + self.per_page - 1) // self.per_page

    @property
    def has_more(self) -> bool:
        return self.page < self.last_page

    def copy(self, item_copier: Callable[[T], T] | None = None) -> Page[T]:
        """Fresh Page with its own items list and filters dict."""
        items = [item_copier(item) for item in self.items] if item_copier else list(self.items)
        return replace(self, items=items, filters=dict(self.filters))


# =============================================================================
# SOFT-DELETABLE ENTITIES
# =============================================================================


class SoftDeleteRepository(Generic[M]):
    """Shared persistence for users, admins and artists.

    Hey future me - repositories only flush, they never commit. The lifecycle services own
    the transaction and commit once per operation, then publish events.
    """

    model: ClassVar[type[Any]]
    # Columns backed by a unique index, checked when translating IntegrityError
    unique_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    @property
    def entity_label(self) -> str:
        return self.model.entity_label

    def base_query(self) -> Select[Any]:
        """Unfiltered SELECT the filter engine refines (visibility included)."""
        return select(self.model)

    async def get_by_id(self, entity_id: int, with_trashed: bool = False) -> M | None:
        stmt = select(self.model).where(self.model.id == entity_id)
        if not with_trashed:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_or_fail(self, entity_id: int, with_trashed: bool = False) -> M:
        """Load an entity or raise EntityNotFoundException (404)."""
        entity = await self.get_by_id(entity_id, with_trashed=with_trashed)
        if entity is None:
            raise EntityNotFoundException(self.entity_label, entity_id)
        return entity

    # Listen up - this reads deleted_at straight from the row, NOT from the identity map.
    # force_delete() calls it right before DELETE so a concurrent restore is noticed.
    async def fetch_deleted_at(self, entity_id: int) -> tuple[bool, datetime | None]:
        """Return (exists, deleted_at) as currently stored."""
        stmt = select(self.model.deleted_at).where(self.model.id == entity_id)
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return False, None
        return True, row[0]

    async def add(self, entity: M) -> M:
        self.session.add(entity)
        await self._flush_or_raise_duplicate(entity)
        return entity

    async def save(self, entity: M) -> M:
        await self._flush_or_raise_duplicate(entity)
        return entity

    async def hard_delete(self, entity: M) -> None:
        await self.session.delete(entity)
        await self.session.flush()

    async def force_delete(self, entity: M) -> None:
        """Permanently remove the row. Subclasses add their polymorphic cleanup."""
        await self.hard_delete(entity)

    async def paginate(self, stmt: Select[Any], page: int = 1, per_page: int = 15) -> Page[M]:
        """Run a (filtered, sorted) SELECT one page at a time."""
        page = max(page, 1)
        per_page = max(min(per_page, 100), 1)

        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = (await self.session.execute(count_stmt)).scalar_one()

        result = await self.session.execute(
            stmt.limit(per_page).offset((page - 1) * per_page)
        )
        return Page(
            items=list(result.scalars().all()),
            total=total,
            page=page,
            per_page=per_page,
        )

    # Yo, the unique index is the ONLY thing that settles two concurrent creates with the same
    # email/spotify_id. We let the DB decide and translate the violation into a 409.
    async def _flush_or_raise_duplicate(self, entity: M) -> None:
        # Grab the values first - rollback expires persistent instances
        unique_values = {name: entity.__dict__.get(name) for name in self.unique_fields}
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            detail = str(e.orig).lower()
            for field_name, value in unique_values.items():
                if field_name in detail:
                    raise DuplicateEntityException(self.entity_label, value) from e
            raise


class ActorRepository(SoftDeleteRepository[M]):
    """Users and admins: email lookups and polymorphic cleanup."""

    unique_fields = ("email",)
    actor_type: ClassVar[ActorType]

    async def get_by_email(self, email: str, with_trashed: bool = False) -> M | None:
        stmt = select(self.model).where(self.model.email == email.strip().lower())
        if not with_trashed:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def force_delete(self, entity: M) -> None:
        """Remove the actor row and everything that points at it polymorphically."""
        ref = ActorRef(self.actor_type, entity.id)
        await self._delete_polymorphic_rows(ref)
        await self.hard_delete(entity)

    async def _delete_polymorphic_rows(self, ref: ActorRef) -> None:
        # No FK can cascade these - (type, id) references are ours to clean up
        await self.session.execute(
            delete(model_has_roles).where(
                model_has_roles.c.model_type == ref.actor_type.value,
                model_has_roles.c.model_id == ref.actor_id,
            )
        )
        await self.session.execute(
            delete(model_has_permissions).where(
                model_has_permissions.c.model_type == ref.actor_type.value,
                model_has_permissions.c.model_id == ref.actor_id,
            )
        )
        await self.session.execute(
            delete(OAuthTokenModel).where(
                OAuthTokenModel.tokenable_type == ref.actor_type.value,
                OAuthTokenModel.tokenable_id == ref.actor_id,
            )
        )
        await self.session.execute(
            delete(MediaModel).where(
                MediaModel.model_type == ref.actor_type.value,
                MediaModel.model_id == ref.actor_id,
            )
        )


class UserRepository(ActorRepository[UserModel]):
    """Repository for end-user accounts."""

    model = UserModel
    actor_type = ActorType.USER

    async def force_delete(self, entity: UserModel) -> None:
        # owner_id is ON DELETE SET NULL too, but SQLite ignores that without the pragma
        await self.session.execute(
            update(ArtistModel)
            .where(ArtistModel.owner_id == entity.id)
            .values(owner_id=None)
            .execution_options(synchronize_session="fetch")
        )
        await super().force_delete(entity)


class AdminRepository(ActorRepository[AdminModel]):
    """Repository for back-office admins."""

    model = AdminModel
    actor_type = ActorType.ADMIN


class ArtistRepository(SoftDeleteRepository[ArtistModel]):
    """Repository for artists."""

    model = ArtistModel
    unique_fields = ("spotify_id",)

    async def get_by_spotify_id(self, spotify_id: str) -> ArtistModel | None:
        stmt = select(ArtistModel).where(ArtistModel.spotify_id == spotify_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def force_delete(self, entity: ArtistModel) -> None:
        await self.session.execute(
            delete(MediaModel).where(
                MediaModel.model_type == entity.media_type,
                MediaModel.model_id == entity.id,
            )
        )
        await self.hard_delete(entity)


# =============================================================================
# ROLES & PERMISSIONS
# =============================================================================


class RoleRepository:
    """Guard-scoped roles, permissions and their assignments."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, role_id: int) -> RoleModel | None:
        return await self.session.get(RoleModel, role_id)

    async def get_by_name(self, name: str, guard: GuardName | str) -> RoleModel | None:
        stmt = select(RoleModel).where(
            RoleModel.name == name, RoleModel.guard_name == GuardName(guard).value
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_role_id(self, value: Any, guard: GuardName | str | None = None) -> int | None:
        """Resolve a role reference (id or name) to an id; None when unresolvable.

        Hey future me - numeric strings are IDs, full stop. A role literally named "42"
        can't be looked up by name. Same rule the filter engine uses.
        """
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            number = parse_db_int(value)
            return number if number is not None and number > 0 else None
        text = str(value).strip()
        if text.isascii() and text.isdigit():
            number = parse_db_int(text)
            return number if number is not None and number > 0 else None
        stmt = select(RoleModel.id).where(RoleModel.name == text)
        if guard is not None:
            stmt = stmt.where(RoleModel.guard_name == GuardName(guard).value)
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def get_or_create_permission(self, name: str, guard: GuardName | str) -> PermissionModel:
        guard_value = GuardName(guard).value
        stmt = select(PermissionModel).where(
            PermissionModel.name == name, PermissionModel.guard_name == guard_value
        )
        permission = (await self.session.execute(stmt)).scalar_one_or_none()
        if permission is None:
            permission = PermissionModel(name=name, guard_name=guard_value)
            self.session.add(permission)
            await self.session.flush()
        return permission

    async def get_or_create_role(self, name: str, guard: GuardName | str) -> RoleModel:
        role = await self.get_by_name(name, guard)
        if role is None:
            role = RoleModel(name=name, guard_name=GuardName(guard).value, permissions=[])
            self.session.add(role)
            await self.session.flush()
        return role

    async def sync_role_permissions(
        self, role: RoleModel, permissions: list[PermissionModel]
    ) -> None:
        for permission in permissions:
            if permission.guard_name != role.guard_name:
                raise ValidationError(
                    f"Permission {permission.name} ({permission.guard_name}) does not match "
                    f"role guard {role.guard_name}"
                )
        role.permissions = list(permissions)
        await self.session.flush()

    async def roles_for(self, ref: ActorRef) -> list[RoleModel]:
        stmt = (
            select(RoleModel)
            .join(model_has_roles, model_has_roles.c.role_id == RoleModel.id)
            .where(
                model_has_roles.c.model_type == ref.actor_type.value,
                model_has_roles.c.model_id == ref.actor_id,
            )
            .order_by(RoleModel.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def permissions_for(self, ref: ActorRef) -> set[str]:
        """All permission names the actor holds in its own guard (roles + direct)."""
        guard_value = guard_for(ref.actor_type).value

        via_roles = (
            select(PermissionModel.name)
            .join(role_has_permissions, role_has_permissions.c.permission_id == PermissionModel.id)
            .join(model_has_roles, model_has_roles.c.role_id == role_has_permissions.c.role_id)
            .where(
                model_has_roles.c.model_type == ref.actor_type.value,
                model_has_roles.c.model_id == ref.actor_id,
                PermissionModel.guard_name == guard_value,
            )
        )
        direct = (
            select(PermissionModel.name)
            .join(
                model_has_permissions,
                model_has_permissions.c.permission_id == PermissionModel.id,
            )
            .where(
                model_has_permissions.c.model_type == ref.actor_type.value,
                model_has_permissions.c.model_id == ref.actor_id,
                PermissionModel.guard_name == guard_value,
            )
        )
        result = await self.session.execute(via_roles.union(direct))
        return set(result.scalars().all())

    async def assign_role(self, ref: ActorRef, role: RoleModel) -> None:
        self._check_guard(ref, role)
        existing = await self.session.execute(
            select(model_has_roles.c.role_id).where(
                model_has_roles.c.role_id == role.id,
                model_has_roles.c.model_type == ref.actor_type.value,
                model_has_roles.c.model_id == ref.actor_id,
            )
        )
        if existing.first() is None:
            await self.session.execute(
                insert(model_has_roles).values(
                    role_id=role.id, model_type=ref.actor_type.value, model_id=ref.actor_id
                )
            )

    async def sync_roles(self, ref: ActorRef, roles: list[RoleModel]) -> None:
        """Replace the actor's role set."""
        for role in roles:
            self._check_guard(ref, role)
        await self.session.execute(
            delete(model_has_roles).where(
                model_has_roles.c.model_type == ref.actor_type.value,
                model_has_roles.c.model_id == ref.actor_id,
            )
        )
        for role in {r.id: r for r in roles}.values():
            await self.session.execute(
                insert(model_has_roles).values(
                    role_id=role.id, model_type=ref.actor_type.value, model_id=ref.actor_id
                )
            )

    async def give_permission(self, ref: ActorRef, permission: PermissionModel) -> None:
        if permission.guard_name != guard_for(ref.actor_type).value:
            raise ValidationError(
                f"Permission {permission.name} belongs to guard {permission.guard_name}, "
                f"not {guard_for(ref.actor_type).value}"
            )
        await self.session.execute(
            insert(model_has_permissions).values(
                permission_id=permission.id,
                model_type=ref.actor_type.value,
                model_id=ref.actor_id,
            )
        )

    @staticmethod
    def _check_guard(ref: ActorRef, role: RoleModel) -> None:
        expected = guard_for(ref.actor_type).value
        if role.guard_name != expected:
            raise ValidationError(
                f"Role {role.name} belongs to guard {role.guard_name}, not {expected}"
            )


# =============================================================================
# OAUTH TOKENS
# =============================================================================


class OAuthTokenRepository:
    """Repository for per-(actor, provider) OAuth tokens."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _owner_clause(self, ref: ActorRef, provider: str) -> tuple[Any, ...]:
        return (
            OAuthTokenModel.tokenable_type == ref.actor_type.value,
            OAuthTokenModel.tokenable_id == ref.actor_id,
            OAuthTokenModel.provider == provider,
        )

    async def get(self, ref: ActorRef, provider: str) -> OAuthTokenModel | None:
        """Token row regardless of is_active (for status display and upserts)."""
        stmt = select(OAuthTokenModel).where(*self._owner_clause(ref, provider))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active(self, ref: ActorRef, provider: str) -> OAuthTokenModel | None:
        stmt = select(OAuthTokenModel).where(
            *self._owner_clause(ref, provider),
            OAuthTokenModel.is_active == True,  # noqa: E712
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for(self, ref: ActorRef) -> list[OAuthTokenModel]:
        stmt = (
            select(OAuthTokenModel)
            .where(
                OAuthTokenModel.tokenable_type == ref.actor_type.value,
                OAuthTokenModel.tokenable_id == ref.actor_id,
            )
            .order_by(OAuthTokenModel.provider)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # Listen up - UPSERT on the unique triple. Two callbacks racing for the same pair: the loser
    # hits the unique index on flush, rolls back and retries as an UPDATE of the winner's row.
    # The rollback discards the whole transaction, so callers must not have pending work in
    # this session (OAuthCredentialService commits before and after).
    async def upsert(self, ref: ActorRef, provider: str, values: dict[str, Any]) -> OAuthTokenModel:
        """Create or update the token row for (actor, provider)."""
        model = await self.get(ref, provider)
        if model is not None:
            self._apply(model, values)
            await self.session.flush()
            return model

        model = OAuthTokenModel(
            tokenable_type=ref.actor_type.value,
            tokenable_id=ref.actor_id,
            provider=provider,
        )
        self._apply(model, values)
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            logger.info(
                "OAuth token insert lost a race, updating existing row",
                extra={"action": "oauth_token_upsert_retry", "tokenable": str(ref), "provider": provider},
            )
            existing = await self.get(ref, provider)
            if existing is None:
                raise
            self._apply(existing, values)
            await self.session.flush()
            return existing
        return model

    @staticmethod
    def _apply(model: OAuthTokenModel, values: dict[str, Any]) -> None:
        for key, value in values.items():
            setattr(model, key, value)

    async def deactivate_expired(self, now: datetime | None = None) -> int:
        """Bulk-deactivate active tokens past expires_at. Returns rows touched."""
        now = now or utc_now()
        stmt = (
            update(OAuthTokenModel)
            .where(
                OAuthTokenModel.is_active == True,  # noqa: E712
                OAuthTokenModel.expires_at.is_not(None),
                OAuthTokenModel.expires_at < now,
            )
            .values(is_active=False, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0


# =============================================================================
# UPLOAD STAGING & MEDIA
# =============================================================================


class TemporaryFileRepository:
    """Repository for staged uploads."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, temp_file: TemporaryFileModel) -> TemporaryFileModel:
        self.session.add(temp_file)
        await self.session.flush()
        return temp_file

    async def get_by_folder(self, folder: str) -> TemporaryFileModel | None:
        stmt = select(TemporaryFileModel).where(TemporaryFileModel.folder == folder)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_expired(self, now: datetime | None = None) -> list[TemporaryFileModel]:
        now = now or utc_now()
        stmt = select(TemporaryFileModel).where(TemporaryFileModel.expires_at < now)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_folders(self) -> set[str]:
        result = await self.session.execute(select(TemporaryFileModel.folder))
        return set(result.scalars().all())

    async def delete(self, temp_file: TemporaryFileModel) -> None:
        await self.session.delete(temp_file)
        await self.session.flush()


class MediaRepository:
    """Repository for media attached to users, admins and artists."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for(self, model_type: str, model_id: int, collection: str) -> list[MediaModel]:
        stmt = (
            select(MediaModel)
            .where(
                MediaModel.model_type == model_type,
                MediaModel.model_id == model_id,
                MediaModel.collection_name == collection,
            )
            .order_by(MediaModel.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def first_for(self, model_type: str, model_id: int, collection: str) -> MediaModel | None:
        items = await self.list_for(model_type, model_id, collection)
        return items[0] if items else None

    async def add(self, media: MediaModel) -> MediaModel:
        self.session.add(media)
        await self.session.flush()
        return media

    async def clear_collection(self, model_type: str, model_id: int, collection: str) -> list[str]:
        """Delete every media row in the collection. Returns the file paths that were removed."""
        items = await self.list_for(model_type, model_id, collection)
        for media in items:
            await self.session.delete(media)
        await self.session.flush()
        return [media.path for media in items]


class NotificationRepository:
    """Repository for in-app notifications."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, notification: NotificationModel) -> NotificationModel:
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def list_for(self, ref: ActorRef, unread_only: bool = False, limit: int = 50) -> list[NotificationModel]:
        stmt = select(NotificationModel).where(
            NotificationModel.recipient_type == ref.actor_type.value,
            NotificationModel.recipient_id == ref.actor_id,
        )
        if unread_only:
            stmt = stmt.where(NotificationModel.read == False)  # noqa: E712
        stmt = stmt.order_by(NotificationModel.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_older_than(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            delete(NotificationModel).where(NotificationModel.created_at < cutoff)
        )
        return result.rowcount or 0
