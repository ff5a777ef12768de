"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the questionnaire and wires the engine once
  - Global exception handlers (brief errors → 400/503/500)
  - The Telegram webhook mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``brief-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from sqlalchemy import text

from brief_db.engine import dispose_engine, get_engine
from brief_db.repository import SqlSessionStore
from brief_engine.catalog import QuestionCatalog
from brief_engine.engine import BriefEngine
from brief_engine.errors import CollaboratorUnavailableError, InvalidOptionError

from brief_server.config import ServerSettings, load_settings
from brief_server.errors import (
    collaborator_error_handler,
    generic_error_handler,
    invalid_option_handler,
)
from brief_server.routes import register_routes
from brief_server.telegram import TelegramChannel

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan — runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load the questionnaire into a ``QuestionCatalog``
      2. Open the shared Bot API HTTP client
      3. Build ``BriefEngine`` over ``SqlSessionStore`` + ``TelegramChannel``

    Shutdown:
      1. Close the HTTP client
      2. Dispose the database engine's connection pool
    """
    settings: ServerSettings = app.state.settings
    if not settings.bot_token:
        raise RuntimeError("TEAM_TELEGRAM_BOT_TOKEN is not set")

    catalog = QuestionCatalog.load(settings.catalog_path)

    client = httpx.AsyncClient(timeout=settings.telegram_timeout_seconds)
    channel = TelegramChannel(
        client,
        token=settings.bot_token,
        api_base=settings.telegram_api_base,
    )
    if settings.report_chat_id is None:
        logger.warning("BRIEF_TELEGRAM_CHAT_ID is not set; completed briefs will not be delivered")

    app.state.engine = BriefEngine(
        catalog,
        SqlSessionStore(),
        channel,
        report_channel_id=settings.report_chat_id,
        ttl_seconds=settings.session_ttl_seconds,
    )
    logger.info("BriefEngine ready with %d questions", len(catalog))

    yield

    # --- Shutdown ---
    await client.aclose()
    await dispose_engine()
    logger.info("HTTP client closed and database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Brief Bot",
        description="Telegram webhook for the conversational brief",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # --- Exception handlers ---
    app.add_exception_handler(InvalidOptionError, invalid_option_handler)
    app.add_exception_handler(CollaboratorUnavailableError, collaborator_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity."""
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "ok"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": "database unreachable"}

    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn brief_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``brief-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "brief_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
