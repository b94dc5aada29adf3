"""Database engine and unit-of-work sessions for the Tradepost SQLite store.

The application keeps one engine and one session factory on ``app.state``.
Every request, and every test that needs a database, works inside a single
unit of work:

    sessions = create_session_factory(create_engine(settings.database_url))
    async with unit_of_work(sessions) as session:
        repo = Repository(session)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tradepost.db.models import Base

logger = logging.getLogger(__name__)

# Applied to every new connection. Concurrent requests touching the same goods
# wait on each other (WAL + busy timeout) instead of failing with "database is
# locked", and transaction lines cannot lose the goods they reference.
SQLITE_PRAGMAS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=15000",
    "PRAGMA foreign_keys=ON",
)


def _apply_pragmas(dbapi_conn: object, connection_record: object) -> None:
    cursor = dbapi_conn.cursor()  # type: ignore[attr-defined]
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


def create_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    engine = create_async_engine(database_url, echo=echo, connect_args={"timeout": 15})
    event.listen(engine.sync_engine, "connect", _apply_pragmas)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions bound to *engine*.

    Rows stay loaded after commit so handlers can still serialize what they
    wrote.
    """
    return async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def unit_of_work(
    sessions: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Commit when the block completes and roll back if it raises.

    With an atomic ``Repository`` this makes a whole ledger operation one
    database transaction.
    """
    async with sessions() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables. Existing tables are left as they are."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("schema_ready tables=%d", len(Base.metadata.tables))
