"""Service test fixtures — async DB, record store stack + FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database and its own fallback file
    - db_manager patched so the readiness probe sees the test engine
    - app.state.carnet_service replaced (ASGITransport does not run the lifespan)

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for store and route tests
    - Deterministic clock so created/deactivated dates are assertable
    - MemoryKeyValueStore with scripted failures stands in for a broken backend
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from app.db.base import Base
from app.infrastructure.database import DatabaseSessionManager
from app.infrastructure.record_store import (
    CarnetStore, FallbackKeyValueStore, JsonFileKeyValueStore, SqlKeyValueStore,
)
import app.infrastructure.database as db_module
from app.main import app
from app.services.carnet_service import CarnetService
from tests.helpers import FIXED_NOW
from tests.services.memory_store import MemoryKeyValueStore


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def test_db_manager(test_engine, test_session_factory):
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = test_session_factory
    return manager


@pytest.fixture
def fallback_path(tmp_path):
    return tmp_path / "carnets-fallback.json"


@pytest.fixture
def carnet_store(test_db_manager, fallback_path):
    kv = FallbackKeyValueStore(
        SqlKeyValueStore(test_db_manager), JsonFileKeyValueStore(fallback_path),
    )
    return CarnetStore(kv)


@pytest.fixture
def carnet_service(carnet_store):
    return CarnetService(carnet_store, clock=lambda: FIXED_NOW)


@pytest.fixture
def memory_kv():
    return MemoryKeyValueStore()


@pytest.fixture
def memory_service(memory_kv):
    """CarnetService over a MemoryKeyValueStore, for scripting store failures."""
    return CarnetService(CarnetStore(memory_kv), clock=lambda: FIXED_NOW)


@pytest.fixture
async def client(test_db_manager, carnet_service):
    """FastAPI test client wired to the test store stack."""
    original_manager = db_module.db_manager
    original_service = getattr(app.state, "carnet_service", None)
    db_module.db_manager = test_db_manager
    app.state.carnet_service = carnet_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    db_module.db_manager = original_manager
    app.state.carnet_service = original_service
