"""
Health routes - liveness/readiness probes (public)
"""

import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from smarthouse.api.deps import get_app_settings, get_database
from smarthouse.core.clock import utcnow
from smarthouse.core.config import Settings
from smarthouse.core.database import Database

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(
    request: Request,
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
):
    """API and database status. 503 only when the database errors."""
    body = {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "environment": settings.environment,
        "services": {"api": "up", "database": "unknown"},
    }

    if not database.is_connected:
        body["services"]["database"] = "disconnected"
        body["status"] = "degraded"
    else:
        try:
            await database.ping()
            body["services"]["database"] = "up"
        except (SQLAlchemyError, OSError) as e:
            body["services"]["database"] = "error"
            body["status"] = "unhealthy"
            if not settings.is_production:
                body["error"] = str(e)

    return JSONResponse(body, status_code=503 if body["status"] == "unhealthy" else 200)


@router.get("/live")
async def liveness():
    return {"status": "alive"}


@router.get("/ready")
async def readiness(database: Database = Depends(get_database)):
    if not database.is_connected:
        return JSONResponse({"status": "not_ready", "reason": "Database not connected"}, status_code=503)
    try:
        await database.ping()
    except (SQLAlchemyError, OSError):
        return JSONResponse({"status": "not_ready", "reason": "Database ping failed"}, status_code=503)
    return {"status": "ready"}
