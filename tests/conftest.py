"""Shared test fixtures - async SQLite engine, sessions, test client."""

import os

# Set env vars BEFORE importing app modules (config reads at import time)
os.environ.setdefault("HARDLEVEL_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hardlevel.api.deps import get_file_storage  # noqa: E402
from hardlevel.core.database import get_db  # noqa: E402
from hardlevel.main import app  # noqa: E402
from hardlevel.models import Base  # noqa: E402
from hardlevel.services.export import LocalFileStorage  # noqa: E402

# Async SQLite engine for tests (in-memory, fast)
test_engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db():
    async with TestSession() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
def export_storage(tmp_path):
    return LocalFileStorage(tmp_path / "exports")


@pytest.fixture
async def client(export_storage):
    app.dependency_overrides[get_file_storage] = lambda: export_storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.pop(get_file_storage, None)


@pytest.fixture
async def db():
    async with TestSession() as session:
        yield session
