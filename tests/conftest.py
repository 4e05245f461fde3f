"""Shared fixtures.

Hey future me - every test gets its OWN in-memory SQLite database (StaticPool keeps the
single connection alive between sessions), and storage under tmp_path. bcrypt runs with
4 rounds so password tests stay fast.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from artistdesk.config import (
    DatabaseSettings,
    OAuthSettings,
    SecuritySettings,
    Settings,
    StorageSettings,
)
from artistdesk.domain.entities import (
    ActorContext,
    ActorType,
    all_permissions,
)
from artistdesk.infrastructure.persistence import AdminModel, Database, UserModel


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at an in-memory database and a temp storage root."""
    return Settings(
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        security=SecuritySettings(app_key="artistdesk-test-app-key", bcrypt_rounds=4),
        storage=StorageSettings(root=tmp_path / "storage"),
        oauth=OAuthSettings(refresh_window_minutes=5, http_timeout=5.0),
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    """Database with every table created."""
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def session_factory(db: Database) -> async_sessionmaker[AsyncSession]:
    return db.session_factory


@pytest.fixture
async def session(db: Database) -> AsyncGenerator[AsyncSession, None]:
    async with db.session_factory() as session:
        yield session


@pytest.fixture
def superuser_actor() -> ActorContext:
    """A user holding every permission in the catalogue."""
    return ActorContext(
        actor_type=ActorType.USER,
        actor_id=1,
        permissions=frozenset(all_permissions()),
        roles=frozenset({"admin"}),
    )


@pytest.fixture
def plain_user_actor() -> ActorContext:
    """A user without any permission."""
    return ActorContext(actor_type=ActorType.USER, actor_id=2)


@pytest.fixture
def admin_actor() -> ActorContext:
    """An admin holding every permission."""
    return ActorContext(
        actor_type=ActorType.ADMIN,
        actor_id=1,
        permissions=frozenset(all_permissions()),
        roles=frozenset({"admin"}),
    )


@pytest.fixture
async def user(session: AsyncSession) -> UserModel:
    """A persisted user row."""
    model = UserModel(name="Thom Yorke", email="thom@example.com")
    session.add(model)
    await session.commit()
    return model


@pytest.fixture
async def admin(session: AsyncSession) -> AdminModel:
    """A persisted admin row."""
    model = AdminModel(name="Nigel Godrich", email="nigel@example.com")
    session.add(model)
    await session.commit()
    return model
