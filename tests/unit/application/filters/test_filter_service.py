"""Tests for the filter engine (against a real in-memory database)."""

from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artistdesk.application.filters import ArtistFilter, BaseFilter, FilterService
from artistdesk.application.services import RoleService
from artistdesk.domain.entities import ActorRef, ActorType, GuardName
from artistdesk.infrastructure.persistence import (
    AdminModel,
    ArtistModel,
    NotificationModel,
    UserModel,
    utc_now,
)


async def run(session: AsyncSession, model: type, filters: dict) -> list:
    stmt = await FilterService(session).apply_filters(select(model), filters)
    result = await session.execute(stmt)
    return list(result.scalars().all())


class TestValueReaders:
    """Tolerant parsing of query-string values."""

    @pytest.mark.parametrize("value", ["1", "true", "TRUE", "yes", "on", True, 1])
    def test_truthy_values(self, value: object) -> None:
        assert BaseFilter({"flag": value}).get_bool("flag") is True

    @pytest.mark.parametrize("value", ["0", "false", "no", "off", "", "maybe", False, 0])
    def test_falsy_values(self, value: object) -> None:
        assert BaseFilter({"flag": value}).get_bool("flag") is False

    def test_get_int_rejects_garbage_and_zero(self) -> None:
        f = BaseFilter({"a": "12", "b": "abc", "c": 0, "d": True, "e": "0"})
        assert f.get_int("a") == 12
        assert f.get_int("b") is None
        assert f.get_int("c") is None
        assert f.get_int("d") is None
        assert f.get_int("e", allow_zero=True) == 0

    @pytest.mark.parametrize("value", ["²", "١٢", "9" * 25, 2**63, -(2**63) - 1, "+-3"])
    def test_get_int_rejects_unicode_digits_and_out_of_range(self, value: object) -> None:
        assert BaseFilter({"n": value}).get_int("n", allow_zero=True) is None

    def test_get_int_accepts_int64_bounds(self) -> None:
        f = BaseFilter({"hi": str(2**63 - 1), "lo": -(2**63), "neg": " -7 "})
        assert f.get_int("hi") == 2**63 - 1
        assert f.get_int("lo") == -(2**63)
        assert f.get_int("neg") == -7

    def test_get_date_variants(self) -> None:
        f = BaseFilter(
            {
                "iso": "2025-03-04",
                "dt": datetime(2025, 3, 4, 15, 30, tzinfo=UTC),
                "stamp": "2025-03-04T10:00:00",
                "bad": "not-a-date",
            }
        )
        assert f.get_date("iso") == date(2025, 3, 4)
        assert f.get_date("dt") == date(2025, 3, 4)
        assert f.get_date("stamp") == date(2025, 3, 4)
        assert f.get_date("bad") is None
        assert f.get_date("missing") is None


class TestVisibility:
    """Soft-delete visibility flags."""

    @pytest.fixture
    async def artists(self, session: AsyncSession) -> list[ArtistModel]:
        now = utc_now()
        rows = [
            ArtistModel(name="Active One"),
            ArtistModel(name="Active Two"),
            ArtistModel(name="Active Three"),
            ArtistModel(name="Gone One", deleted_at=now),
            ArtistModel(name="Gone Two", deleted_at=now),
        ]
        session.add_all(rows)
        await session.commit()
        return rows

    async def test_default_hides_soft_deleted(
        self, session: AsyncSession, artists: list[ArtistModel]
    ) -> None:
        result = await run(session, ArtistModel, {})
        assert {a.name for a in result} == {"Active One", "Active Two", "Active Three"}

    async def test_only_inactive_returns_exactly_the_soft_deleted(
        self, session: AsyncSession, artists: list[ArtistModel]
    ) -> None:
        result = await run(session, ArtistModel, {"only_inactive": "true"})
        assert {a.name for a in result} == {"Gone One", "Gone Two"}

    async def test_with_inactive_returns_everything(
        self, session: AsyncSession, artists: list[ArtistModel]
    ) -> None:
        result = await run(session, ArtistModel, {"with_inactive": "1"})
        assert len(result) == 5

    async def test_only_inactive_wins_over_with_inactive(
        self, session: AsyncSession, artists: list[ArtistModel]
    ) -> None:
        result = await run(session, ArtistModel, {"with_inactive": "1", "only_inactive": "1"})
        assert len(result) == 2
        assert all(a.deleted_at is not None for a in result)


class TestSearchAndSort:
    """Search term and ordering."""

    @pytest.fixture
    async def artists(self, session: AsyncSession) -> None:
        session.add_all(
            [
                ArtistModel(name="Radiohead", spotify_id="4Z8W4fKeB5YxbusRsdQVPb", popularity=80),
                ArtistModel(name="Portishead", spotify_id="6liAMWkVf5LH7YR9yfFy1Y", popularity=65),
                ArtistModel(name="Björk", spotify_id="7w29UYBi0qsHi5RTcv3lmA", popularity=70),
                ArtistModel(name="50%_Off", popularity=1),
            ]
        )
        await session.commit()

    async def test_search_matches_name_case_insensitive(
        self, session: AsyncSession, artists: None
    ) -> None:
        result = await run(session, ArtistModel, {"search": "HEAD"})
        assert {a.name for a in result} == {"Radiohead", "Portishead"}

    async def test_search_matches_secondary_field(
        self, session: AsyncSession, artists: None
    ) -> None:
        result = await run(session, ArtistModel, {"search": "7w29UYB"})
        assert [a.name for a in result] == ["Björk"]

    async def test_single_character_search_is_ignored(
        self, session: AsyncSession, artists: None
    ) -> None:
        assert len(await run(session, ArtistModel, {"search": "R"})) == 4
        assert len(await run(session, ArtistModel, {"search": "Ra"})) == 1

    async def test_wildcards_are_matched_literally(
        self, session: AsyncSession, artists: None
    ) -> None:
        result = await run(session, ArtistModel, {"search": "%_"})
        assert [a.name for a in result] == ["50%_Off"]

    async def test_sort_by_whitelisted_field(self, session: AsyncSession, artists: None) -> None:
        result = await run(
            session, ArtistModel, {"sort_by": "popularity", "sort_direction": "asc"}
        )
        assert [a.popularity for a in result] == [1, 65, 70, 80]

    async def test_unknown_sort_field_falls_back_to_created_at_desc(
        self, session: AsyncSession, artists: None
    ) -> None:
        result = await run(session, ArtistModel, {"sort_by": "password; DROP TABLE"})
        # Same created_at tick -> id desc tie-break
        assert [a.id for a in result] == sorted((a.id for a in result), reverse=True)

    async def test_invalid_direction_defaults_to_desc(
        self, session: AsyncSession, artists: None
    ) -> None:
        result = await run(session, ArtistModel, {"sort_by": "name", "sort_direction": "sideways"})
        names = [a.name for a in result]
        assert names == sorted(names, reverse=True)


class TestArtistSpecificFilters:
    """Owner and numeric ranges."""

    async def test_owner_and_ranges(self, session: AsyncSession, user: UserModel) -> None:
        session.add_all(
            [
                ArtistModel(name="Mine", owner_id=user.id, popularity=50, followers_count=1000),
                ArtistModel(name="Also Mine", owner_id=user.id, popularity=0, followers_count=10),
                ArtistModel(name="Nobody's", popularity=90, followers_count=5_000_000),
            ]
        )
        await session.commit()

        owned = await run(session, ArtistModel, {"owner_id": str(user.id)})
        assert {a.name for a in owned} == {"Mine", "Also Mine"}

        popular = await run(session, ArtistModel, {"popularity_min": 40, "popularity_max": "95"})
        assert {a.name for a in popular} == {"Mine", "Nobody's"}

        zero_floor = await run(session, ArtistModel, {"popularity_max": 0})
        assert [a.name for a in zero_floor] == ["Also Mine"]

        big = await run(session, ArtistModel, {"followers_count_min": "1000"})
        assert {a.name for a in big} == {"Mine", "Nobody's"}

    async def test_garbage_owner_id_is_ignored(self, session: AsyncSession) -> None:
        session.add(ArtistModel(name="Solo"))
        await session.commit()
        assert len(await run(session, ArtistModel, {"owner_id": "abc"})) == 1


    @pytest.mark.parametrize(
        "filters",
        [
            {"owner_id": "9" * 25},
            {"popularity_min": "9" * 25},
            {"popularity_max": 10**30},
            {"followers_count_min": "²"},
            {"owner_id": "³"},
        ],
    )
    async def test_unusable_numbers_turn_the_step_into_a_no_op(
        self, session: AsyncSession, filters: dict
    ) -> None:
        session.add(ArtistModel(name="Solo", popularity=10))
        await session.commit()
        assert [a.name for a in await run(session, ArtistModel, filters)] == ["Solo"]

class TestDateRanges:
    """created_from / created_to cover whole days."""

    async def test_created_range_is_inclusive_of_whole_days(self, session: AsyncSession) -> None:
        day = datetime(2025, 6, 15, tzinfo=UTC)
        session.add_all(
            [
                ArtistModel(name="Early", created_at=day.replace(hour=0, minute=0, second=1)),
                ArtistModel(name="Late", created_at=day.replace(hour=23, minute=59, second=59)),
                ArtistModel(name="Next Day", created_at=day + timedelta(days=1, hours=1)),
            ]
        )
        await session.commit()

        result = await run(
            session, ArtistModel, {"created_from": "2025-06-15", "created_to": "2025-06-15"}
        )
        assert {a.name for a in result} == {"Early", "Late"}

    async def test_invalid_date_is_ignored(self, session: AsyncSession) -> None:
        session.add(ArtistModel(name="Any"))
        await session.commit()
        assert len(await run(session, ArtistModel, {"created_from": "yesterday-ish"})) == 1


class TestRoleFilter:
    """role / role_id on actor lists."""

    @pytest.fixture
    async def people(self, session: AsyncSession) -> dict[str, UserModel]:
        roles = RoleService(session)
        await roles.seed_default_roles()
        alice = UserModel(name="Alice", email="alice@example.com")
        bob = UserModel(name="Bob", email="bob@example.com")
        session.add_all([alice, bob])
        await session.commit()
        await roles.assign_role(ActorRef(ActorType.USER, alice.id), "admin")
        await roles.assign_role(ActorRef(ActorType.USER, bob.id), "user")
        return {"alice": alice, "bob": bob}

    async def test_role_by_name(self, session: AsyncSession, people: dict) -> None:
        result = await run(session, UserModel, {"role": "admin"})
        assert [u.name for u in result] == ["Alice"]

    async def test_role_by_id(self, session: AsyncSession, people: dict) -> None:
        role = await RoleService(session).find_role("user", GuardName.WEB)
        assert role is not None
        result = await run(session, UserModel, {"role_id": str(role.id)})
        assert [u.name for u in result] == ["Bob"]

    async def test_role_id_takes_precedence(self, session: AsyncSession, people: dict) -> None:
        role = await RoleService(session).find_role("user", GuardName.WEB)
        assert role is not None
        result = await run(session, UserModel, {"role_id": role.id, "role": "admin"})
        assert [u.name for u in result] == ["Bob"]

    async def test_unknown_role_skips_the_filter(
        self, session: AsyncSession, people: dict
    ) -> None:
        result = await run(session, UserModel, {"role": "does-not-exist"})
        assert len(result) == 2

    @pytest.mark.parametrize(
        "filters",
        [{"role_id": "²"}, {"role": "²"}, {"role_id": "9" * 25}, {"role": "9" * 25}],
    )
    async def test_unusable_role_reference_skips_the_filter(
        self, session: AsyncSession, people: dict, filters: dict
    ) -> None:
        result = await run(session, UserModel, filters)
        assert len(result) == 2

    async def test_admin_guard_role_does_not_match_users(
        self, session: AsyncSession, people: dict
    ) -> None:
        admin_guard_role = await RoleService(session).find_role("admin", GuardName.ADMIN)
        assert admin_guard_role is not None
        result = await run(session, UserModel, {"role_id": admin_guard_role.id})
        assert result == []

    async def test_admin_search_by_email(self, session: AsyncSession) -> None:
        session.add_all(
            [
                AdminModel(name="Ops", email="ops@artistdesk.io"),
                AdminModel(name="Support", email="help@example.com"),
            ]
        )
        await session.commit()
        result = await run(session, AdminModel, {"search": "artistdesk"})
        assert [a.name for a in result] == ["Ops"]


class TestFilterService:
    """Model detection."""

    async def test_unknown_model_is_left_alone(self, session: AsyncSession) -> None:
        stmt = select(NotificationModel)
        assert await FilterService(session).apply_filters(stmt, {"search": "xx"}) is stmt

    async def test_filter_for_artist(self, session: AsyncSession) -> None:
        assert isinstance(FilterService(session).filter_for(ArtistModel, {}), ArtistFilter)
