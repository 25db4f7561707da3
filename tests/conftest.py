"""Shared pytest fixtures for unit and integration tests."""

import os
import uuid

# Settings are read at import time; pin a throwaway database and quiet defaults first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.config import settings
from app.database import Base, configure_sqlite_engine, get_db

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def api_base() -> str:
    """Base URL for API requests."""
    return f"http://test{settings.API_V1_PREFIX}"


@pytest.fixture
async def db_engine():
    """Fresh in-memory database per test, schema created from the models."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    configure_sqlite_engine(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory):
    """Session for tests that call services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory, api_base: str):
    """Async HTTP client bound to the app, with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=api_base, timeout=30.0) as client:
        yield client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def unique_suffix() -> str:
    """Unique suffix for test data to avoid collisions."""
    return str(uuid.uuid4())[:8]


@pytest.fixture
async def subject(async_client: AsyncClient, api_base: str) -> dict:
    """A subject offered in the first year."""
    resp = await async_client.post(
        f"{api_base}/subjects",
        json={"id": "BSI101", "name": "Object-Oriented Programming", "year": 1, "credits": 4},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
