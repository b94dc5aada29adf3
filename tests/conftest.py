"""Shared test fixtures."""

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tradepost.config import Settings
from tradepost.db.engine import create_engine, create_session_factory, unit_of_work
from tradepost.db.models import Base, GoodRow
from tradepost.db.repository import Repository


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(tradepost_env="development", database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def engine() -> AsyncEngine:
    """Create an in-memory SQLite engine with all tables."""
    eng = create_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the in-memory engine."""
    return create_session_factory(engine)


@pytest.fixture
async def repo(sessions: async_sessionmaker[AsyncSession]) -> Repository:
    """Yield a repository inside one unit of work on the in-memory database."""
    async with unit_of_work(sessions) as session:
        yield Repository(session)


@pytest.fixture
def add_good(repo: Repository):
    """Return a helper that inserts a good directly through the repository."""

    async def _add(
        name: str = "Silver Sword",
        stock: int = 10,
        value: float = 500.0,
        material: str = "Silver",
    ) -> GoodRow:
        return await repo.create_good(
            name=name,
            description="A sword made of silver, effective against monsters.",
            material=material,
            weight=3.5,
            value=value,
            stock=stock,
        )

    return _add
