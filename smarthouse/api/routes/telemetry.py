"""
Telemetry routes - ingestion from sensor nodes, readings and alerts for the app
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from smarthouse.api.deps import (
    client_address,
    get_app_settings,
    get_db_session,
    get_pipeline,
    require_app,
    require_device,
)
from smarthouse.core.clock import as_utc
from smarthouse.core.config import Settings
from smarthouse.schemas import AlertOut, SensorStatistics, SensorStatsOut, TelemetryOut
from smarthouse.services import queries
from smarthouse.services.ingestion import IngestionPipeline

router = APIRouter(tags=["telemetry"])


@router.post("/telemetry", dependencies=[Depends(require_device)])
async def ingest_telemetry(
    request: Request,
    payload: dict[str, Any] = Body(...),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """Receive one reading from a sensor node."""
    record = await pipeline.ingest(payload, client_address(request))
    return JSONResponse(
        {
            "success": True,
            "message": "Telemetry data saved",
            "id": record.id,
            "timestamp": as_utc(record.timestamp).isoformat(),
        },
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/readings", dependencies=[Depends(require_app)])
async def get_readings(
    device_id: str | None = Query(None, alias="deviceId"),
    sensor_type: str | None = Query(None, alias="sensorType"),
    limit: int = Query(100, ge=1),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    sort_order: str = Query("desc", alias="sortOrder"),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
):
    readings = await queries.list_readings(
        session,
        device_id=device_id,
        sensor_type=sensor_type,
        start=start_date,
        end=end_date,
        sort_order=sort_order,
        limit=queries.clamp_limit(limit, settings.max_query_limit),
    )
    return {
        "success": True,
        "count": len(readings),
        "data": [TelemetryOut.model_validate(r).dump() for r in readings],
    }


@router.get("/readings/latest", dependencies=[Depends(require_app)])
async def get_latest_readings(
    device_id: str | None = Query(None, alias="deviceId"),
    session: AsyncSession = Depends(get_db_session),
):
    """Newest reading of every (device, sensor type) pair."""
    readings = await queries.latest_readings(session, device_id)
    return {
        "success": True,
        "count": len(readings),
        "data": [TelemetryOut.model_validate(r).dump() for r in readings],
    }


@router.get("/readings/stats", dependencies=[Depends(require_app)])
async def get_reading_stats(
    device_id: str | None = Query(None, alias="deviceId"),
    sensor_type: str | None = Query(None, alias="sensorType"),
    period: str = Query(queries.DEFAULT_PERIOD),
    session: AsyncSession = Depends(get_db_session),
):
    period, start, stats = await queries.reading_stats(
        session,
        device_id=device_id,
        sensor_type=sensor_type,
        period=period,
    )
    return {
        "success": True,
        "period": period,
        "startDate": start.isoformat(),
        "data": [
            SensorStatsOut(
                device_id=s.device_id,
                sensor_type=s.sensor_type,
                statistics=SensorStatistics(
                    average=s.average,
                    minimum=s.minimum,
                    maximum=s.maximum,
                    count=s.count,
                    last_value=s.last_value,
                    last_timestamp=s.last_timestamp,
                ),
            ).dump()
            for s in stats
        ],
    }


@router.get("/alerts", dependencies=[Depends(require_app)])
async def get_alerts(
    device_id: str | None = Query(None, alias="deviceId"),
    severity: str | None = Query(None),
    acknowledged: bool | None = Query(None),
    limit: int = Query(50, ge=1),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
):
    alerts = await queries.list_alerts(
        session,
        device_id=device_id,
        severity=severity,
        acknowledged=acknowledged,
        limit=queries.clamp_limit(limit, settings.max_query_limit),
    )
    return {
        "success": True,
        "count": len(alerts),
        "data": [AlertOut.model_validate(a).dump() for a in alerts],
    }


@router.patch("/alerts/{alert_id}/acknowledge", dependencies=[Depends(require_app)])
async def acknowledge_alert(alert_id: int, session: AsyncSession = Depends(get_db_session)):
    alert = await queries.acknowledge_alert(session, alert_id)
    return {
        "success": True,
        "message": "Alert acknowledged",
        "data": AlertOut.model_validate(alert).dump(),
    }
