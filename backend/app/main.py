"""Carnets API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CarnetsError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Record store and CarnetService built once on startup via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Store = database primary + JSON file secondary (FallbackKeyValueStore)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import carnets, health
from app.config import Settings, get_settings
from app.infrastructure.database import init_db
from app.infrastructure.observability import setup_logging
from app.infrastructure.record_store import (
    CarnetStore, FallbackKeyValueStore, JsonFileKeyValueStore, SqlKeyValueStore,
)
from app.services.carnet_service import CarnetService

logger = logging.getLogger(__name__)


def build_carnet_service(settings: Settings, manager) -> CarnetService:
    """Wire the record store backends into a CarnetService."""
    kv = FallbackKeyValueStore(
        SqlKeyValueStore(manager),
        JsonFileKeyValueStore(settings.fallback_store_path),
    )
    return CarnetService(
        CarnetStore(kv, settings.carnets_store_key),
        import_created_by=settings.import_created_by,
        timezone_name=settings.timezone,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_create_tables:
        try:
            await manager.create_tables()
        except Exception as e:
            logger.error(f"Could not create tables, fallback store will be used: {e}")
    app.state.carnet_service = build_carnet_service(settings, manager)
    logger.info("Carnets API started")
    yield
    await manager.dispose()
    logger.info("Carnets API shutting down")


app = FastAPI(title="Carnets API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(carnets.router)

register_error_handlers(app)
