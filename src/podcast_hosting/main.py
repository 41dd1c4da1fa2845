from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from podcast_hosting.api.api import public_router
from podcast_hosting.api.api import router as api_router
from podcast_hosting.models.database import (
    create_db_engine,
    create_session_factory,
    upgrade_database,
)
from podcast_hosting.services.repository import AudioRepository
from podcast_hosting.services.services import AudioService
from podcast_hosting.services.storage import create_blob_store
from podcast_hosting.settings import Settings, load_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _prepare_database(engine: Engine) -> None:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        logger.info("Database is accessible")
        upgrade_database(engine)
    except OperationalError:
        logger.warning(
            "Database connection failed during startup. "
            "Start Postgres or check .env settings."
        )


def create_app(settings: Settings | None = None, service: AudioService | None = None) -> FastAPI:
    """Wire settings, storage and database once and build the application.

    ``service`` replaces the storage and database wiring entirely.
    """
    settings = settings or load_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = None
    if service is None:
        engine = create_db_engine(settings.DATABASE_URL)
        repository = AudioRepository(create_session_factory(engine))
        service = AudioService(create_blob_store(settings.STORAGE_CONNECTION), repository)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Channel settings: title=%r description=%r public base url=%r",
            settings.CHANNEL_TITLE,
            settings.CHANNEL_DESCRIPTION,
            settings.PUBLIC_BASE_URL,
        )
        if not settings.API_TOKENS:
            logger.warning("API_TOKENS is empty; uploads and deletions are disabled.")
        if engine is not None:
            _prepare_database(engine)
        yield
        if engine is not None:
            engine.dispose()

    app = FastAPI(title="Podcasts Hosting", lifespan=lifespan)
    app.state.settings = settings
    app.state.audio_service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.include_router(public_router, tags=["feed"])
    app.include_router(api_router, prefix="/api/v1", tags=["audio"])
    return app


def run() -> None:
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
