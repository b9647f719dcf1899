"""
Shared pytest configuration for rowing backend tests.

Service tests run against an in-memory SQLite database so they need no
running PostgreSQL. Route tests mock the service layer instead.
"""

import os

# Must be set before the routes package is imported so rate limits are no-ops
os.environ.setdefault("ENV", "test")

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker  # noqa: E402

from rowing_backend.database.db import Base  # noqa: E402
from rowing_backend.database.models import BoatType  # noqa: E402
from rowing_backend.services import gauntlet_service  # noqa: E402


@pytest_asyncio.fixture
async def db_session():
    """Create a test database session."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        yield session

    # Cleanup
    await engine.dispose()


@pytest_asyncio.fixture
async def two_lineup_gauntlet(db_session):
    """Gauntlet with one challenger (rank 1) and the home lineup (rank 2)."""
    return await gauntlet_service.create_gauntlet(
        db_session,
        name="Spring 1x gauntlet",
        boat_type=BoatType.SINGLE,
        home_lineup={"name": "Home", "boat_id": 10},
        challenger_lineups=[{"name": "Challenger", "boat_id": 11}],
        created_by=1,
    )


@pytest_asyncio.fixture
async def four_lineup_gauntlet(db_session):
    """Gauntlet with three challengers (ranks 1-3) and the home lineup (rank 4)."""
    return await gauntlet_service.create_gauntlet(
        db_session,
        name="Spring 2x gauntlet",
        boat_type=BoatType.DOUBLE,
        home_lineup={"name": "Home", "boat_id": 20},
        challenger_lineups=[
            {"name": "First", "boat_id": 21},
            {"name": "Second", "boat_id": 22},
            {"name": "Third", "boat_id": 23},
        ],
        created_by=1,
    )

