"""Tests for repositories and model helpers."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artistdesk.domain.entities import ActorRef, ActorType, GuardName
from artistdesk.domain.exceptions import DuplicateEntityException, EntityNotFoundException
from artistdesk.infrastructure.persistence import (
    ArtistModel,
    MediaModel,
    OAuthTokenModel,
    UserModel,
    utc_now,
)
from artistdesk.infrastructure.persistence.repositories import (
    ArtistRepository,
    OAuthTokenRepository,
    Page,
    RoleRepository,
    UserRepository,
)


class TestPage:
    """Page arithmetic."""

    @pytest.mark.parametrize(
        ("total", "per_page", "last_page"), [(0, 15, 1), (15, 15, 1), (16, 15, 2), (31, 15, 3)]
    )
    def test_last_page(self, total: int, per_page: int, last_page: int) -> None:
        page = Page(items=[], total=total, page=1, per_page=per_page)
        assert page.last_page == last_page
        assert page.has_more is (last_page > 1)


class TestSoftDeleteRepository:
    """Shared repository behaviour (artists as the example)."""

    async def test_trashed_rows_hidden_unless_requested(self, session: AsyncSession) -> None:
        repo = ArtistRepository(session)
        artist = await repo.add(ArtistModel(name="Blur", deleted_at=utc_now()))

        assert await repo.get_by_id(artist.id) is None
        assert await repo.get_by_id(artist.id, with_trashed=True) is artist
        with pytest.raises(EntityNotFoundException):
            await repo.find_or_fail(artist.id)

    async def test_fetch_deleted_at_reads_the_row(self, session: AsyncSession) -> None:
        repo = ArtistRepository(session)
        artist = await repo.add(ArtistModel(name="Oasis"))
        await session.commit()

        assert await repo.fetch_deleted_at(artist.id) == (True, None)
        assert await repo.fetch_deleted_at(artist.id + 1000) == (False, None)

    async def test_duplicate_spotify_id(self, session: AsyncSession) -> None:
        repo = ArtistRepository(session)
        await repo.add(ArtistModel(name="Pulp", spotify_id="sp-1"))
        await session.commit()

        with pytest.raises(DuplicateEntityException) as exc_info:
            await repo.add(ArtistModel(name="Pulp again", spotify_id="sp-1"))
        assert exc_info.value.entity_id == "sp-1"

    async def test_paginate_clamps_page_and_size(self, session: AsyncSession) -> None:
        repo = ArtistRepository(session)
        for index in range(5):
            await repo.add(ArtistModel(name=f"Band {index}"))
        await session.commit()

        page = await repo.paginate(repo.base_query().order_by(ArtistModel.id), page=0, per_page=2)
        assert page.page == 1
        assert page.total == 5
        assert [a.name for a in page.items] == ["Band 0", "Band 1"]

        huge = await repo.paginate(repo.base_query(), per_page=1000)
        assert huge.per_page == 100

    async def test_artist_force_delete_drops_media(self, session: AsyncSession) -> None:
        repo = ArtistRepository(session)
        artist = await repo.add(ArtistModel(name="Elbow"))
        session.add(
            MediaModel(
                model_type="artist",
                model_id=artist.id,
                collection_name="profile_photos",
                name="p",
                file_name="p.png",
                path="/nowhere/p.png",
            )
        )
        await session.flush()

        await repo.force_delete(artist)

        assert (await session.execute(select(MediaModel))).first() is None


class TestActorRepository:
    """Email lookups and polymorphic cleanup."""

    async def test_get_by_email_is_case_insensitive(
        self, session: AsyncSession, user: UserModel
    ) -> None:
        repo = UserRepository(session)
        assert await repo.get_by_email("  THOM@Example.com ") is user

        user.deleted_at = utc_now()
        await session.flush()
        assert await repo.get_by_email("thom@example.com") is None
        assert await repo.get_by_email("thom@example.com", with_trashed=True) is user

    async def test_force_delete_user_cleans_references(
        self, session: AsyncSession, user: UserModel
    ) -> None:
        roles = RoleRepository(session)
        role = await roles.get_or_create_role("user", GuardName.WEB)
        await roles.assign_role(user.actor_ref, role)
        artist = ArtistModel(name="Radiohead", owner_id=user.id)
        session.add_all(
            [
                artist,
                OAuthTokenModel(
                    tokenable_type="user",
                    tokenable_id=user.id,
                    provider="google",
                    provider_user_id="g",
                    access_token="a",
                ),
                # Same id, other actor table: must survive
                OAuthTokenModel(
                    tokenable_type="admin",
                    tokenable_id=user.id,
                    provider="google",
                    provider_user_id="g2",
                    access_token="b",
                ),
            ]
        )
        await session.commit()

        await UserRepository(session).force_delete(user)
        await session.commit()

        assert await roles.roles_for(ActorRef(ActorType.USER, user.id)) == []
        tokens = (await session.execute(select(OAuthTokenModel))).scalars().all()
        assert [t.tokenable_type for t in tokens] == ["admin"]
        await session.refresh(artist)
        assert artist.owner_id is None


class TestRoleRepository:
    """Role lookups and permission resolution."""

    @pytest.mark.parametrize("value", [None, "", True, 0, -3, "0"])
    async def test_find_role_id_unresolvable(self, session: AsyncSession, value: object) -> None:
        assert await RoleRepository(session).find_role_id(value) is None

    async def test_find_role_id_numeric_string_is_id(self, session: AsyncSession) -> None:
        assert await RoleRepository(session).find_role_id(" 42 ") == 42

    async def test_permissions_from_roles_and_direct_grants(
        self, session: AsyncSession, user: UserModel
    ) -> None:
        repo = RoleRepository(session)
        ref = user.actor_ref
        role = await repo.get_or_create_role("editor", GuardName.WEB)
        update = await repo.get_or_create_permission("artists.update", GuardName.WEB)
        await repo.sync_role_permissions(role, [update])
        await repo.assign_role(ref, role)
        await repo.give_permission(
            ref, await repo.get_or_create_permission("artists.view", GuardName.WEB)
        )
        # A role of the admin guard never leaks into a user's permissions
        admin_role = await repo.get_or_create_role("editor", GuardName.ADMIN)
        await repo.sync_role_permissions(
            admin_role, [await repo.get_or_create_permission("artists.forceDelete", GuardName.ADMIN)]
        )

        assert await repo.permissions_for(ref) == {"artists.update", "artists.view"}


class TestOAuthTokenModel:
    """Expiry helpers on the token row."""

    def make(self, minutes_left: float | None) -> OAuthTokenModel:
        expires_at = None if minutes_left is None else utc_now() + timedelta(minutes=minutes_left)
        return OAuthTokenModel(
            tokenable_type="user",
            tokenable_id=1,
            provider="spotify",
            provider_user_id="x",
            access_token="a",
            expires_at=expires_at,
            scopes=["user-read-email"],
        )

    def test_refresh_window_boundary(self) -> None:
        now = utc_now()
        token = self.make(None)
        token.expires_at = now + timedelta(minutes=5)
        with patch(
            "artistdesk.infrastructure.persistence.models.utc_now", return_value=now
        ):
            assert token.needs_refresh(5) is True
            assert token.is_expired() is False
        with patch(
            "artistdesk.infrastructure.persistence.models.utc_now",
            return_value=now - timedelta(seconds=1),
        ):
            assert token.needs_refresh(5) is False

    def test_naive_expiry_is_treated_as_utc(self) -> None:
        token = self.make(None)
        token.expires_at = (utc_now() - timedelta(minutes=1)).replace(tzinfo=None)
        assert token.is_expired() is True

    def test_non_expiring(self) -> None:
        token = self.make(None)
        assert token.is_expired() is False
        assert token.needs_refresh() is False

    def test_scopes_and_type(self) -> None:
        token = self.make(60)
        assert token.has_scope("user-read-email")
        assert not token.has_scope("streaming")
        assert token.token_type() == "Bearer"
        assert token.tokenable == ActorRef(ActorType.USER, 1)


class TestOAuthTokenRepository:
    """Upsert and bulk deactivation."""

    async def test_upsert_updates_existing(self, session: AsyncSession) -> None:
        repo = OAuthTokenRepository(session)
        ref = ActorRef(ActorType.USER, 1)
        first = await repo.upsert(ref, "spotify", {"provider_user_id": "a", "access_token": "1"})
        second = await repo.upsert(ref, "spotify", {"provider_user_id": "a", "access_token": "2"})

        assert first is second
        assert (await repo.get(ref, "spotify")).access_token == "2"
        assert len(await repo.list_for(ref)) == 1

    async def test_deactivate_expired(self, session: AsyncSession) -> None:
        repo = OAuthTokenRepository(session)
        ref = ActorRef(ActorType.USER, 1)
        await repo.upsert(
            ref,
            "spotify",
            {
                "provider_user_id": "a",
                "access_token": "1",
                "expires_at": utc_now() - timedelta(seconds=1),
            },
        )
        await repo.upsert(ref, "google", {"provider_user_id": "a", "access_token": "1"})
        await session.commit()

        assert await repo.deactivate_expired() == 1
        await session.commit()
        session.expire_all()
        assert await repo.get_active(ref, "spotify") is None
        assert await repo.get_active(ref, "google") is not None
