"""Shared fixtures: a throwaway SQLite database per test, an ASGI client
wired to it, and a recording stand-in for the video host."""

import os


# Configure the app for tests before anything imports the settings
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_PROVIDER"] = "none"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from courseforge.auth.dependencies import get_current_user_id
from courseforge.database.base import Base
from courseforge.database.engine import create_app_engine
from courseforge.database.session import get_db_session, session_scope
from courseforge.main import app
from courseforge.videos.client import VideoAsset, VideoHostError, get_video_host


class FakeVideoHost:
    """Records asset calls instead of talking to Mux."""

    def __init__(self) -> None:
        self.created: list[str] = []
        self.deleted: list[str] = []
        self.fail_deletes = False

    async def create_asset(self, source_url: str) -> VideoAsset:
        self.created.append(source_url)
        n = len(self.created)
        return VideoAsset(asset_id=f"asset-{n}", playback_id=f"playback-{n}")

    async def delete_asset(self, asset_id: str) -> None:
        if self.fail_deletes:
            raise VideoHostError("asset deletion failed with status 500")
        self.deleted.append(asset_id)


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_app_engine(f"sqlite+aiosqlite:///{tmp_path / 'courseforge.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def video_host() -> FakeVideoHost:
    return FakeVideoHost()


@pytest_asyncio.fixture
async def client(
    session_maker: async_sessionmaker[AsyncSession], video_host: FakeVideoHost
) -> AsyncGenerator[AsyncClient, None]:
    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_scope(session_maker) as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_video_host] = lambda: video_host

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def act_as() -> Callable[[UUID], None]:
    """Switch the caller identity for subsequent requests."""

    def _act_as(user_id: UUID) -> None:
        app.dependency_overrides[get_current_user_id] = lambda: user_id

    return _act_as
