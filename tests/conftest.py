"""
tests.conftest

Shared fixtures and in-memory collaborators.

Responsibilities:
- Provide controllable fakes (see `tests.fakes`) as fixtures.
- Build coordinators with short timers and tear them down after each test.
- Provide a per-test sqlite database for repository/service tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_portal.db.init_db import init_db
from clinic_portal.db.session import create_engine, create_sessionmaker
from clinic_portal.session.coordinator import SessionCoordinator
from clinic_portal.settings import Settings
from tests.fakes import ANA, BRUNO, FakeAuthBackend, FakeProfileStore


@pytest.fixture
def auth() -> FakeAuthBackend:
    return FakeAuthBackend()


@pytest.fixture
def profiles() -> FakeProfileStore:
    return FakeProfileStore(ANA, BRUNO)


@pytest_asyncio.fixture
async def make_coordinator(
    auth: FakeAuthBackend, profiles: FakeProfileStore
) -> AsyncIterator[Callable[..., SessionCoordinator]]:
    created: list[SessionCoordinator] = []

    def _make(**timers: float) -> SessionCoordinator:
        timers.setdefault("refresh_interval", 60.0)
        timers.setdefault("startup_timeout", 5.0)
        timers.setdefault("inactivity_timeout", 60.0)
        coordinator = SessionCoordinator(auth=auth, profiles=profiles, **timers)
        created.append(coordinator)
        return coordinator

    yield _make
    for coordinator in created:
        await coordinator.close()


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        backend_url="http://backend.test",
        backend_anon_key="anon-test",
        jwt_secret="test-secret-with-at-least-32-bytes!!",
    )


@pytest_asyncio.fixture
async def session_factory(app_settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(app_settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
