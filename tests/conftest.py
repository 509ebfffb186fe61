"""Shared test fixtures for Blockpanel."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from backend.blocks.store import SqlDocumentStore
from backend.config import Settings
from backend.main import create_app, init_app_services
from backend.models.base import Base

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

TEST_SECRET_KEY = "test-secret-key-with-at-least-32-characters"
ADMIN_PASSWORD = "admin123"


@asynccontextmanager
async def create_test_client(
    settings: Settings,
    media_transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Manually performs the work of the application lifespan (DB schema, admin
    user) because ASGITransport does not trigger it.
    """
    from backend.services.auth_service import ensure_admin_user
    from backend.services.media_service import MediaHostClient

    app = create_app(settings)
    settings.validate_runtime_security()
    init_app_services(app)
    if media_transport is not None:
        app.state.media_host = MediaHostClient.from_settings(settings, transport=media_transport)

    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with app.state.session_factory() as session:
        await ensure_admin_user(session, settings)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await app.state.engine.dispose()


async def login(client: AsyncClient) -> dict[str, str]:
    """Log in as the bootstrap admin and return bearer auth headers."""
    resp = await client.post(
        "/api/auth/login",
        json={"username": "admin", "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with temporary paths."""
    db_path = tmp_path / "test.db"
    return Settings(
        _env_file=None,
        secret_key=TEST_SECRET_KEY,
        debug=True,
        database_url=f"sqlite+aiosqlite:///{db_path}",
        admin_username="admin",
        admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with all tables."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def document_store(session_factory: async_sessionmaker[AsyncSession]) -> SqlDocumentStore:
    return SqlDocumentStore(session_factory)


@pytest.fixture
async def client(test_settings: Settings) -> AsyncGenerator[AsyncClient]:
    """HTTP client for an app with an initialized database."""
    async with create_test_client(test_settings) as ac:
        yield ac


@pytest.fixture
async def auth_headers(client: AsyncClient) -> dict[str, str]:
    return await login(client)
