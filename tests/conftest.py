import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("INTERNAL_ADMIN_KEY", "test-internal")
os.environ.setdefault("SESSION_TOKEN_PEPPER", "test-pepper")
os.environ["OTEL_ENABLED"] = "false"
os.environ["STORAGE_BACKEND"] = "local"

import httpx
import pytest
import pytest_asyncio

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

# Import Base + all models so metadata is complete
from umkm.models.base import Base
from umkm.models.listing import Listing  # noqa: F401
from umkm.models.admin import AdminUser, AdminSession  # noqa: F401

from umkm.main import app
from umkm.core.db import get_db
from umkm.services.storage import LocalObjectStore, get_object_store

from tests.fakes import FlakyObjectStore
from tests.fixtures_seed import admin_headers, seed_admin  # noqa: F401


def _test_db_url() -> str:
    return os.getenv("DATABASE_URL_TEST", "sqlite+aiosqlite://")


@pytest_asyncio.fixture
async def async_engine():
    url = _test_db_url()
    kwargs = {}
    if url.startswith("sqlite"):
        # one shared in-memory database for the whole test
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    engine = create_async_engine(url, future=True, **kwargs)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine):
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


@pytest.fixture
def local_store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(str(tmp_path / "storage"), bucket="umkm-images", public_base_url="http://test/static/storage")


@pytest.fixture
def object_store(local_store) -> FlakyObjectStore:
    return FlakyObjectStore(local_store)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, object_store: FlakyObjectStore):
    """
    HTTP client that uses the test DB session and object store via dependency override.
    """
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_object_store] = lambda: object_store

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
