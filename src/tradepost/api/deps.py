"""FastAPI dependency injection for settings, database sessions and repository."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tradepost.config import Settings
from tradepost.db.engine import unit_of_work
from tradepost.db.repository import Repository


async def get_settings(request: Request) -> Settings:
    """Get the application settings from app state."""
    return request.app.state.settings


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """One unit of work per request, from the session factory on app state."""
    async with unit_of_work(request.app.state.session_factory) as session:
        yield session


async def get_repo(
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Repository:
    """Get a repository bound to the current session, with the configured write policy."""
    return Repository(
        session,
        atomic=settings.tradepost_ledger_atomic,
        compare_and_swap=settings.compare_and_swap,
    )


RepoDep = Annotated[Repository, Depends(get_repo)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
