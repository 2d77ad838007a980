"""API test infrastructure: async httpx client, SQLite cache table, mocked PVGIS."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.models import Base
from app.services.yield_cache import DatabaseCacheStore
from app.services.yield_service import get_calculator, reset_calculator
from engine.pv_yield.pvgis_client import PVGISClient
from engine.pv_yield.yield_calculator import YieldCalculator

# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_cache(session_factory, fake_clock) -> DatabaseCacheStore:
    return DatabaseCacheStore(session_factory, max_entries=3, clock=fake_clock)


# ---------------------------------------------------------------------------
# FastAPI app with overridden dependencies
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def pvgis(mock_pvgis):
    """Recording PVGIS transport answering with the London sample response."""
    return mock_pvgis()


@pytest_asyncio.fixture
async def app(session_factory, pvgis):
    from app.main import create_app

    application = create_app()

    calculator = YieldCalculator(
        PVGISClient(
            cache=DatabaseCacheStore(session_factory),
            transport=pvgis.transport,
        )
    )
    application.dependency_overrides[get_calculator] = lambda: calculator

    # Reset rate limiter between tests
    from app.core.rate_limit import yield_limiter
    yield_limiter.reset()

    yield application

    application.dependency_overrides.clear()
    reset_calculator()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
