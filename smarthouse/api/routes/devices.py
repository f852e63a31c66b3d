"""
Device routes - registry CRUD for the mobile app
"""

from datetime import timedelta

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from smarthouse.api.deps import get_app_settings, get_db_session, require_app
from smarthouse.core.clock import utcnow
from smarthouse.core.config import Settings
from smarthouse.models.device import Device
from smarthouse.schemas import (
    DeviceCreate,
    DeviceDetailOut,
    DeviceOut,
    DeviceStatusOut,
    DeviceUpdate,
    TelemetryOut,
)
from smarthouse.services import devices as registry
from smarthouse.services import queries

router = APIRouter(prefix="/devices", tags=["devices"], dependencies=[Depends(require_app)])


def _with_status(device: Device, settings: Settings) -> DeviceStatusOut:
    now = utcnow()
    base = DeviceOut.model_validate(device).model_dump()
    return DeviceStatusOut(
        **base,
        is_online=registry.is_online(
            device.last_seen, now, timedelta(seconds=settings.liveness_window_seconds)
        ),
        last_seen_ago=registry.format_time_ago(device.last_seen, now),
    )


@router.get("")
async def list_devices(
    location: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
):
    devices = await registry.list_devices(session, location=location, status=status_filter)
    return {
        "success": True,
        "count": len(devices),
        "data": [_with_status(d, settings).dump() for d in devices],
    }


@router.get("/{device_id}")
async def get_device(
    device_id: str,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
):
    """Device details with the newest reading of each of its sensors."""
    device = await registry.get_device(session, device_id)
    readings = await queries.latest_readings(session, device_id)
    detail = DeviceDetailOut(
        **_with_status(device, settings).model_dump(),
        latest_readings=[TelemetryOut.model_validate(r) for r in readings],
    )
    return {"success": True, "data": detail.dump()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_device(
    payload: DeviceCreate = Body(...),
    session: AsyncSession = Depends(get_db_session),
):
    device = await registry.register_device(session, payload)
    return {
        "success": True,
        "message": "Device registered successfully",
        "data": DeviceOut.model_validate(device).dump(),
    }


@router.put("/{device_id}")
async def update_device(
    device_id: str,
    payload: DeviceUpdate = Body(...),
    session: AsyncSession = Depends(get_db_session),
):
    device = await registry.update_device(session, device_id, payload)
    return {
        "success": True,
        "message": "Device updated successfully",
        "data": DeviceOut.model_validate(device).dump(),
    }


@router.delete("/{device_id}")
async def delete_device(
    device_id: str,
    delete_readings: bool = Query(False, alias="deleteReadings"),
    session: AsyncSession = Depends(get_db_session),
):
    removed = await registry.delete_device(session, device_id, delete_readings)
    return {
        "success": True,
        "message": "Device deleted successfully",
        "readingsDeleted": removed,
    }
