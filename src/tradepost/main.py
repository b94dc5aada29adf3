"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from tradepost.api.goods import router as goods_router
from tradepost.api.hunters import router as hunters_router
from tradepost.api.merchants import router as merchants_router
from tradepost.api.transactions import router as transactions_router
from tradepost.config import Settings
from tradepost.db.engine import create_engine, create_session_factory, create_tables

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create engine, tables and session factory. Shutdown: dispose of the engine."""
    settings: Settings = app.state.settings
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    logger.info(
        "tradepost_started env=%s stock_guard=%s ledger_atomic=%s",
        settings.tradepost_env,
        settings.tradepost_stock_guard,
        settings.tradepost_ledger_atomic,
    )

    yield

    await engine.dispose()
    logger.info("tradepost_stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the Tradepost FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.tradepost_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Tradepost",
        version="0.1.0",
        description="Stock and transaction ledger for hunters, merchants and their goods",
        docs_url="/docs" if settings.tradepost_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(goods_router)
    app.include_router(hunters_router)
    app.include_router(merchants_router)
    app.include_router(transactions_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.tradepost_env}

    # Registered last so every route above matches first.
    @app.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def not_implemented(path: str) -> JSONResponse:
        return JSONResponse(
            status_code=501,
            content={
                "error": "Not Implemented",
                "message": f"The requested route /{path} is not implemented.",
            },
        )

    return app


app = create_app()
