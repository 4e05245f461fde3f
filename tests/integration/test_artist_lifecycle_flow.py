"""End-to-end artist lifecycle: services, event bus, cache and in-app notifications wired
together the way the application wires them."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from artistdesk.application.cache import CacheInvalidationListener, EntityCache
from artistdesk.application.events import LifecycleEventBus
from artistdesk.application.policies import PolicyEngine
from artistdesk.application.services import (
    ArtistService,
    NotificationService,
    RoleService,
    TemporaryFileService,
)
from artistdesk.config import Settings
from artistdesk.domain.entities import ActorContext
from artistdesk.domain.exceptions import (
    AuthorizationError,
    EntityNotFoundException,
    ForceDeleteActiveRecordError,
)
from artistdesk.infrastructure.notifications import InAppNotificationProvider
from artistdesk.infrastructure.persistence import UserModel


@pytest.fixture
def inapp(session_factory: async_sessionmaker[AsyncSession]) -> InAppNotificationProvider:
    return InAppNotificationProvider(session_factory)


@pytest.fixture
def artists(
    session: AsyncSession, settings: Settings, inapp: InAppNotificationProvider
) -> ArtistService:
    cache = EntityCache("artists", ttl_seconds=settings.cache.ttl_seconds)
    bus = LifecycleEventBus()
    bus.subscribe(CacheInvalidationListener({"Artist": cache}))
    return ArtistService(
        session,
        settings,
        notifications=NotificationService([inapp]),
        events=bus,
        cache=cache,
        file_mover=TemporaryFileService(session, settings.storage),
        policies=PolicyEngine(),
    )


@pytest.fixture
async def owner(session: AsyncSession, user: UserModel) -> ActorContext:
    """The seeded "user" role, resolved from the database."""
    roles = RoleService(session)
    await roles.seed_default_roles()
    await roles.assign_role(user.actor_ref, "user")
    return await roles.build_actor_context(user.actor_ref)


class TestArtistLifecycleFlow:
    """create -> show -> update -> delete -> restore -> force delete."""

    async def test_full_lifecycle(
        self,
        artists: ArtistService,
        owner: ActorContext,
        inapp: InAppNotificationProvider,
        user: UserModel,
    ) -> None:
        artist = await artists.create(
            owner, {"name": "Radiohead", "owner_id": user.id, "popularity": 80}
        )
        assert artist.created_by == user.id

        # Cached read, then an update must not serve the stale copy
        assert (await artists.show(artist.id))["name"] == "Radiohead"
        await artists.update(owner, artist, {"name": "Radiohead (UK)"})
        assert (await artists.show(artist.id))["name"] == "Radiohead (UK)"

        listed = await artists.paginate({"search": "radio"})
        assert listed.total == 1

        await artists.soft_delete(owner, artist)
        with pytest.raises(EntityNotFoundException):
            await artists.show(artist.id)
        assert (await artists.paginate({"search": "radio"})).total == 0
        assert (await artists.paginate({"search": "radio", "only_inactive": True})).total == 1

        await artists.restore(owner, artist)
        assert artist.restored_by == user.id
        assert (await artists.show(artist.id))["deleted_at"] is None

        titles = [n.title for n in await inapp.get_notifications(owner.ref)]
        assert set(titles) == {
            "Artist Created",
            "Artist Updated",
            "Artist Deleted",
            "Artist Restored",
        }

    async def test_user_role_cannot_force_delete(
        self, artists: ArtistService, owner: ActorContext, user: UserModel
    ) -> None:
        artist = await artists.create(owner, {"name": "Portishead", "owner_id": user.id})
        await artists.soft_delete(owner, artist)

        with pytest.raises(AuthorizationError):
            await artists.force_delete(owner, artist)

    async def test_superuser_force_delete_requires_trash(
        self,
        artists: ArtistService,
        superuser_actor: ActorContext,
        inapp: InAppNotificationProvider,
    ) -> None:
        artist = await artists.create(superuser_actor, {"name": "Muse"})

        with pytest.raises(ForceDeleteActiveRecordError):
            await artists.force_delete(superuser_actor, artist)

        await artists.soft_delete(superuser_actor, artist)
        assert await artists.force_delete(superuser_actor, artist) is True
        with pytest.raises(EntityNotFoundException):
            await artists.get(artist.id, with_trashed=True)

        latest = (await inapp.get_notifications(superuser_actor.ref))[0]
        assert latest.type == "warning"

    async def test_profile_photo_round_trip(
        self,
        artists: ArtistService,
        owner: ActorContext,
        session: AsyncSession,
        settings: Settings,
        user: UserModel,
    ) -> None:
        artist = await artists.create(owner, {"name": "Bjork", "owner_id": user.id})
        folder = await TemporaryFileService(session, settings.storage).store_temporary_file(
            "bjork.jpg", b"jpeg-bytes", "image/jpeg"
        )

        assert await artists.add_profile_photo(owner, artist, folder) is True
        photo_dir = settings.storage.media_dir / "artist" / str(artist.id) / "profile_photos"
        assert len(list(photo_dir.iterdir())) == 1

        await artists.remove_profile_photo(owner, artist)
        assert list(photo_dir.iterdir()) == []
