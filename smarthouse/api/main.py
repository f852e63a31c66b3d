"""
Smart House - API Server

Provides endpoints for:
- Telemetry ingestion from sensor nodes (X-API-Key)
- Readings, statistics, alerts and device registry for the mobile app (Bearer)
- Health probes
"""

import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smarthouse.api.routes import devices, health, telemetry
from smarthouse.core.config import Settings, get_settings
from smarthouse.core.database import Database
from smarthouse.core.errors import register_error_handlers
from smarthouse.core.security import log_auth_mode
from smarthouse.services.ingestion import IngestionPipeline
from smarthouse.services.notifications import AlertNotifier
from smarthouse.services.retention import RetentionSweeper

API_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    database: Database = app.state.database
    sweeper: RetentionSweeper = app.state.sweeper

    log_auth_mode(settings)
    await database.connect(create_schema=settings.database_auto_create)

    sweeper_task = None
    if settings.retention_sweep_enabled:
        sweeper_task = asyncio.create_task(sweeper.start())

    logger.info("🏠 %s running (%s)", settings.app_name, settings.environment)
    try:
        yield
    finally:
        sweeper.stop()
        if sweeper_task is not None:
            sweeper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper_task
        if app.state.notifier is not None:
            await app.state.notifier.close()
        await database.dispose()


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """
    Build the application. Storage, pipeline and background services are
    created here and kept on `app.state`; the lifespan connects and releases them.
    """
    settings = settings or get_settings()
    database = database or Database.from_settings(settings)
    notifier = AlertNotifier.from_settings(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Telemetry ingestion and query API for home IoT sensors",
        version=API_VERSION,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.notifier = notifier
    app.state.pipeline = IngestionPipeline.build(database, settings, notifier)
    app.state.sweeper = RetentionSweeper.from_settings(database, settings)
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
        allow_credentials=True,
    )
    register_error_handlers(app, production=settings.is_production)

    for router in (health.router, telemetry.router, devices.router):
        app.include_router(router, prefix=settings.api_prefix)

    prefix = settings.api_prefix

    @app.get("/")
    async def root():
        """Service banner with an endpoint index."""
        return {
            "name": settings.app_name,
            "version": API_VERSION,
            "status": "running",
            "endpoints": {
                "health": f"GET {prefix}/health",
                "telemetry": f"POST {prefix}/telemetry",
                "readings": f"GET {prefix}/readings",
                "latest": f"GET {prefix}/readings/latest",
                "stats": f"GET {prefix}/readings/stats",
                "alerts": f"GET {prefix}/alerts",
                "devices": f"GET {prefix}/devices",
            },
        }

    return app


def run() -> None:
    """Console entry point."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


# ==================== MAIN ====================

if __name__ == "__main__":
    run()
