"""Soft-delete lifecycle shared by users, admins and artists.

Hey future me - this is the state machine every entity goes through:

    create -> ACTIVE -> update* -> soft_delete -> DELETED -> restore -> ACTIVE
                                                  DELETED -> force_delete -> gone
                                                  ACTIVE  -> force_delete -> ForceDeleteActiveRecordError

Order inside every mutation is ALWAYS: mutate -> flush -> commit -> publish events -> log ->
notify. Events and notifications happen after the commit and can't undo it. The actor is an
explicit ActorContext parameter, there is no ambient "current user" anywhere.

Usage:
    service = ArtistService(session, settings, notifications=notifications, events=bus)
    artist = await service.create(actor, {"name": "Radiohead", "spotify_id": "4Z8W4fKeB5YxbusRsdQVPb"})
    await service.soft_delete(actor, artist)
    await service.force_delete(actor, artist)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from artistdesk.application.events import LifecycleEvent, LifecycleEventBus
from artistdesk.application.filters import FilterService
from artistdesk.domain.entities import (
    PROFILE_PHOTO_COLLECTION,
    ActorContext,
    LifecycleEventType,
    PolicyAction,
    ProfilePhotoOutcome,
)
from artistdesk.domain.exceptions import (
    ConfigurationError,
    EntityNotFoundException,
    ForceDeleteActiveRecordError,
    InvalidStateException,
)
from artistdesk.infrastructure.observability.logger_template import log_action
from artistdesk.infrastructure.persistence.models import SoftDeleteStampMixin, utc_now
from artistdesk.infrastructure.persistence.repositories import (
    MediaRepository,
    Page,
    SoftDeleteRepository,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from artistdesk.application.cache import EntityCache
    from artistdesk.application.policies import PolicyEngine
    from artistdesk.application.services.notification_service import NotificationService
    from artistdesk.config import Settings
    from artistdesk.domain.ports import ITemporaryFileMover

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=SoftDeleteStampMixin)


class SoftDeleteLifecycleService(Generic[M]):
    """Generic create/update/soft-delete/restore/force-delete orchestration.

    Subclasses pick the repository and the writable columns, and may hook
    _prepare_data() / _after_persist() for entity specific work (passwords, roles).
    """

    repository_class: ClassVar[type[SoftDeleteRepository[Any]]]
    # Columns callers may set through create()/update(); everything else is ignored
    fillable: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        notifications: NotificationService | None = None,
        events: LifecycleEventBus | None = None,
        cache: EntityCache | None = None,
        file_mover: ITemporaryFileMover | None = None,
        policies: PolicyEngine | None = None,
    ) -> None:
        """Initialize the lifecycle service.

        Args:
            session: Request-scoped database session (this service commits it)
            settings: Application settings (audit stamping rules)
            notifications: Best-effort notification fan-out, None = log only
            events: Bus that receives lifecycle events after each commit
            cache: Read-through cache for show()/paginate()
            file_mover: Port used by add_profile_photo()
            policies: When given, every mutation is authorized first (403 on deny)
        """
        self._session = session
        self._settings = settings
        self._notifications = notifications
        self._events = events
        self._cache = cache
        self._file_mover = file_mover
        self._policies = policies
        self.repository = self.repository_class(session)
        self._media = MediaRepository(session)

    # =========================================================================
    # NAMING HELPERS
    # =========================================================================

    @property
    def entity_label(self) -> str:
        return self.repository.entity_label

    @property
    def action_prefix(self) -> str:
        # "Artist" -> "artist", used for action codes like artist_created_success
        return self.entity_label.lower()

    @staticmethod
    def display_name(entity: Any) -> str:
        return getattr(entity, "name", None) or f"#{entity.id}"

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, entity_id: int, with_trashed: bool = False) -> M:
        """Load the entity or raise EntityNotFoundException (404)."""
        return await self.repository.find_or_fail(entity_id, with_trashed=with_trashed)

    async def show(self, entity_id: int) -> dict[str, Any]:
        """Serialized entity, read through the cache when one is configured."""

        async def load() -> dict[str, Any]:
            entity = await self.repository.find_or_fail(entity_id)
            return self.serialize(entity)

        if self._cache is None:
            return await load()
        # Copies out, the cached object is shared by every later caller
        result: dict[str, Any] = await self._cache.remember(entity_id, load)
        return dict(result)

    async def paginate(
        self,
        filters: dict[str, Any] | None = None,
        page: int = 1,
        per_page: int = 15,
    ) -> Page[dict[str, Any]]:
        """Filtered, sorted page of serialized entities (cached per page+filters)."""
        filters = dict(filters or {})

        async def load() -> Page[dict[str, Any]]:
            stmt = await FilterService(self._session).apply_filters(
                self.repository.base_query(), filters
            )
            result = await self.repository.paginate(stmt, page=page, per_page=per_page)
            return Page(
                items=[self.serialize(item) for item in result.items],
                total=result.total,
                page=result.page,
                per_page=result.per_page,
                filters=filters,
            )

        if self._cache is None:
            return await load()
        cached: Page[dict[str, Any]] = await self._cache.remember_list(page, per_page, filters, load)
        return cached.copy(item_copier=dict)

    def serialize(self, entity: M) -> dict[str, Any]:
        data: dict[str, Any] = entity.to_dict()  # type: ignore[attr-defined]
        return data

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create(self, actor: ActorContext, data: dict[str, Any]) -> M:
        """Persist a new entity and stamp created_by."""
        self._authorize(actor, PolicyAction.CREATE, self.repository.model)
        values, extras = await self._prepare_data(data, creating=True)

        entity = self.repository.model()
        self._fill(entity, values)
        self._stamp(actor, entity, "created_by")
        await self.repository.add(entity)
        await self._after_persist(actor, entity, extras, creating=True)
        await self._session.commit()

        await self._publish(actor, entity.id, LifecycleEventType.CREATED)
        log_action(
            logger,
            f"{self.action_prefix}_created_success",
            f"{self.entity_label} created",
            entity_id=entity.id,
            actor=str(actor.ref),
        )
        await self._notify_success(
            actor,
            f"{self.entity_label} Created",
            f"{self.entity_label} '{self.display_name(entity)}' has been created successfully.",
            action=f"{self.action_prefix}_created_success",
        )
        return entity

    async def update(self, actor: ActorContext, entity: M, data: dict[str, Any]) -> M:
        """Apply changes; an empty password in data leaves the stored one alone."""
        self._authorize(actor, PolicyAction.UPDATE, entity)
        values, extras = await self._prepare_data(data, creating=False)

        self._fill(entity, values)
        self._stamp(actor, entity, "updated_by")
        await self.repository.save(entity)
        await self._after_persist(actor, entity, extras, creating=False)
        await self._session.commit()

        await self._publish(actor, entity.id, LifecycleEventType.UPDATED)
        log_action(
            logger,
            f"{self.action_prefix}_updated_success",
            f"{self.entity_label} updated",
            entity_id=entity.id,
            actor=str(actor.ref),
        )
        await self._notify_success(
            actor,
            f"{self.entity_label} Updated",
            f"{self.entity_label} '{self.display_name(entity)}' has been updated successfully.",
            action=f"{self.action_prefix}_updated_success",
        )
        return entity

    async def soft_delete(self, actor: ActorContext, entity: M) -> M:
        """Move the entity to trash (deleted_at + deleted_by)."""
        self._authorize(actor, PolicyAction.DELETE, entity)
        if entity.trashed():
            raise InvalidStateException(
                f"{self.entity_label} with ID {entity.id} is already deleted"
            )

        entity.deleted_at = utc_now()
        self._stamp(actor, entity, "deleted_by")
        await self.repository.save(entity)
        await self._session.commit()

        await self._publish(
            actor, entity.id, LifecycleEventType.DELETED, LifecycleEventType.LIST_INVALIDATED
        )
        log_action(
            logger,
            f"{self.action_prefix}_soft_deleted_success",
            f"{self.entity_label} soft deleted",
            entity_id=entity.id,
            actor=str(actor.ref),
        )
        await self._notify_success(
            actor,
            f"{self.entity_label} Deleted",
            f"{self.entity_label} '{self.display_name(entity)}' has been moved to trash.",
            action=f"{self.action_prefix}_soft_deleted_success",
        )
        return entity

    async def restore(self, actor: ActorContext, entity: M) -> M:
        """Bring a trashed entity back; restored_at is always set."""
        self._authorize(actor, PolicyAction.RESTORE, entity)
        if not entity.trashed():
            raise InvalidStateException(f"{self.entity_label} with ID {entity.id} is not deleted")

        entity.deleted_at = None
        entity.deleted_by = None
        entity.restored_at = utc_now()
        self._stamp(actor, entity, "restored_by")
        await self.repository.save(entity)
        await self._session.commit()

        await self._publish(actor, entity.id, LifecycleEventType.RESTORED)
        log_action(
            logger,
            f"{self.action_prefix}_restored_success",
            f"{self.entity_label} restored",
            entity_id=entity.id,
            actor=str(actor.ref),
        )
        await self._notify_success(
            actor,
            f"{self.entity_label} Restored",
            f"{self.entity_label} '{self.display_name(entity)}' has been restored successfully.",
            action=f"{self.action_prefix}_restored_success",
        )
        return entity

    # Listen up - the trashed check reads deleted_at from the DATABASE, not from the instance
    # we were handed. If someone restored the row since it was loaded, we refuse. The window
    # between this SELECT and the DELETE still exists, it's just narrow.
    async def force_delete(self, actor: ActorContext, entity: M) -> bool:
        """Permanently delete a soft-deleted entity.

        Raises:
            ForceDeleteActiveRecordError: If the row is not soft-deleted (422)
            EntityNotFoundException: If the row is already gone
        """
        self._authorize(actor, PolicyAction.FORCE_DELETE, entity)
        entity_id = entity.id
        name = self.display_name(entity)

        exists, deleted_at = await self.repository.fetch_deleted_at(entity_id)
        if not exists:
            raise EntityNotFoundException(self.entity_label, entity_id)
        if deleted_at is None:
            log_action(
                logger,
                f"force_delete_active_{self.action_prefix}_attempt",
                f"Attempted to force delete active {self.action_prefix}",
                level=logging.CRITICAL,
                entity_id=entity_id,
                entity_name=name,
                actor=str(actor.ref),
            )
            raise ForceDeleteActiveRecordError(self.entity_label, entity_id)

        paths = await self._media.clear_collection(
            entity.media_type, entity_id, PROFILE_PHOTO_COLLECTION
        )
        await self.repository.force_delete(entity)
        await self._session.commit()
        self._unlink_files(paths)

        await self._publish(actor, entity_id, LifecycleEventType.FORCE_DELETED)
        log_action(
            logger,
            f"{self.action_prefix}_permanently_deleted_success",
            f"{self.entity_label} permanently deleted",
            entity_id=entity_id,
            actor=str(actor.ref),
        )
        await self._notify_warning(
            actor,
            f"{self.entity_label} Permanently Deleted",
            f"{self.entity_label} '{name}' has been permanently deleted and cannot be recovered.",
            action=f"{self.action_prefix}_permanently_deleted_success",
        )
        return True

    # =========================================================================
    # PROFILE PHOTO
    # =========================================================================

    async def add_profile_photo(self, actor: ActorContext, entity: M, folder: str) -> bool:
        """Replace the profile photo with the upload staged in folder."""
        self._authorize(actor, PolicyAction.UPDATE, entity)
        if self._file_mover is None:
            raise ConfigurationError("No temporary file mover configured for profile photos")

        # Single-file collection, the old photo goes first
        paths = await self._media.clear_collection(
            entity.media_type, entity.id, PROFILE_PHOTO_COLLECTION
        )
        moved = await self._file_mover.move_temp_to_media(folder, PROFILE_PHOTO_COLLECTION, entity)
        await self._session.commit()
        self._unlink_files(paths)

        if not moved:
            log_action(
                logger,
                "profile_photo_add_failed",
                f"No staged upload found for {self.action_prefix} profile photo",
                level=logging.WARNING,
                entity_id=entity.id,
                folder=folder,
            )
        else:
            log_action(
                logger,
                "profile_photo_added",
                f"Profile photo added to {self.action_prefix}",
                entity_id=entity.id,
                folder=folder,
            )
        await self._publish(actor, entity.id, LifecycleEventType.UPDATED)
        return moved

    async def remove_profile_photo(self, actor: ActorContext, entity: M) -> ProfilePhotoOutcome:
        """Remove the profile photo. Calling it twice is fine (NOTHING_TO_REMOVE)."""
        self._authorize(actor, PolicyAction.UPDATE, entity)
        paths = await self._media.clear_collection(
            entity.media_type, entity.id, PROFILE_PHOTO_COLLECTION
        )
        if not paths:
            await self._notify_warning(
                actor,
                "No Profile Photo",
                f"This {self.action_prefix} does not have a profile photo to remove.",
                action="profile_photo_missing",
            )
            return ProfilePhotoOutcome.NOTHING_TO_REMOVE

        await self._session.commit()
        self._unlink_files(paths)

        await self._publish(actor, entity.id, LifecycleEventType.UPDATED)
        log_action(
            logger,
            "profile_photo_removed",
            f"Profile photo removed from {self.action_prefix}",
            entity_id=entity.id,
        )
        await self._notify_success(
            actor,
            "Profile Photo Removed",
            f"Profile photo for '{self.display_name(entity)}' has been removed successfully.",
            action="profile_photo_removed",
        )
        return ProfilePhotoOutcome.REMOVED

    # =========================================================================
    # HOOKS
    # =========================================================================

    async def _prepare_data(
        self, data: dict[str, Any], creating: bool
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Split input into (column values, extras for _after_persist)."""
        return {k: v for k, v in data.items() if k in self.fillable}, {}

    async def _after_persist(
        self, actor: ActorContext, entity: M, extras: dict[str, Any], creating: bool
    ) -> None:
        """Runs after flush, before commit (the entity has its id here)."""
        return None

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _fill(entity: M, values: dict[str, Any]) -> None:
        for key, value in values.items():
            setattr(entity, key, value)

    # Hey future me - by default only the entity's own actor kind stamps it: users stamp
    # users and artists, admins stamp admins. An admin editing an artist leaves updated_by
    # alone. Flip AUDIT_STAMP_FOREIGN_ACTORS to record every actor id.
    def _may_stamp(self, actor: ActorContext, entity: M) -> bool:
        if self._settings.audit.stamp_foreign_actors:
            return True
        return actor.actor_type == entity.stamp_actor_type

    def _stamp(self, actor: ActorContext, entity: M, column: str) -> None:
        if self._may_stamp(actor, entity):
            setattr(entity, column, actor.actor_id)

    def _authorize(self, actor: ActorContext, action: PolicyAction, target: Any) -> None:
        if self._policies is not None:
            self._policies.ensure(actor, action, target)

    async def _publish(
        self, actor: ActorContext, entity_id: int, *event_types: LifecycleEventType
    ) -> None:
        if self._events is None:
            return
        await self._events.publish_all(
            [
                LifecycleEvent(
                    type=event_type,
                    entity_type=self.entity_label,
                    entity_id=entity_id,
                    actor=actor.ref,
                )
                for event_type in event_types
            ]
        )

    async def _notify_success(
        self, actor: ActorContext, title: str, message: str, **data: Any
    ) -> None:
        if self._notifications is None:
            return
        try:
            await self._notifications.success(actor.ref, title, message, **data)
        except Exception as e:
            # The mutation is committed, a broken notifier only gets a log line
            logger.warning(f"[NOTIFICATION] {title} not delivered: {e}")

    async def _notify_warning(
        self, actor: ActorContext, title: str, message: str, **data: Any
    ) -> None:
        if self._notifications is None:
            return
        try:
            await self._notifications.warning(actor.ref, title, message, **data)
        except Exception as e:
            logger.warning(f"[NOTIFICATION] {title} not delivered: {e}")

    @staticmethod
    def _unlink_files(paths: Iterable[str]) -> None:
        for path in paths:
            try:
                Path(path).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove media file {path}: {e}")
