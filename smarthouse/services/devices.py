"""
Device registry - explicit registration, updates and removal
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from smarthouse.core.clock import as_utc, utcnow
from smarthouse.core.errors import ConflictError, NotFoundError, ValidationError
from smarthouse.models.device import Device
from smarthouse.models.telemetry import Telemetry
from smarthouse.schemas import DeviceCreate, DeviceUpdate

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "location", "type", "firmware", "status")


def is_online(last_seen: datetime | None, now: datetime, window: timedelta) -> bool:
    """Online means seen within the liveness window. Never stored."""
    if last_seen is None:
        return False
    return now - as_utc(last_seen) < window


def format_time_ago(last_seen: datetime | None, now: datetime) -> str:
    if last_seen is None:
        return "Never"
    seconds = max(0, int((now - as_utc(last_seen)).total_seconds()))
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


async def list_devices(
    session: AsyncSession,
    location: str | None = None,
    status: str | None = None,
) -> list[Device]:
    stmt = select(Device)
    if location:
        stmt = stmt.where(Device.location == location)
    if status:
        stmt = stmt.where(Device.status == status)
    result = await session.execute(stmt.order_by(Device.device_id))
    return list(result.scalars().all())


async def get_device(session: AsyncSession, device_id: str) -> Device:
    result = await session.execute(select(Device).where(Device.device_id == device_id))
    device = result.scalar_one_or_none()
    if device is None:
        raise NotFoundError("Device not found")
    return device


async def register_device(session: AsyncSession, payload: DeviceCreate) -> Device:
    device_id = (payload.device_id or "").strip()
    if not device_id:
        raise ValidationError("deviceId is required", field="deviceId")

    existing = await session.execute(select(Device.id).where(Device.device_id == device_id))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Device already exists")

    device = Device(
        device_id=device_id,
        name=payload.name or device_id,
        location=payload.location or "Unknown",
        type=payload.type or "ESP32",
        firmware=payload.firmware or "unknown",
        status="registered",
        created_at=utcnow(),
        last_seen=None,
    )
    session.add(device)
    try:
        await session.commit()
    except IntegrityError:
        # Lost a race with another registration or with ingestion auto-discovery
        await session.rollback()
        raise ConflictError("Device already exists") from None

    logger.info("🆕 Registered device: %s", device_id)
    return device


async def update_device(session: AsyncSession, device_id: str, payload: DeviceUpdate) -> Device:
    device = await get_device(session, device_id)

    for field in UPDATABLE_FIELDS:
        value = getattr(payload, field)
        if value:
            setattr(device, field, value)
    device.updated_at = utcnow()

    await session.commit()
    return device


async def delete_device(session: AsyncSession, device_id: str, delete_readings: bool = False) -> int:
    """Remove a device; returns the number of telemetry rows removed with it."""
    result = await session.execute(delete(Device).where(Device.device_id == device_id))
    if result.rowcount == 0:
        await session.rollback()
        raise NotFoundError("Device not found")

    removed = 0
    if delete_readings:
        readings = await session.execute(delete(Telemetry).where(Telemetry.device_id == device_id))
        removed = readings.rowcount

    await session.commit()
    logger.info("Deleted device %s (readings removed: %s)", device_id, removed)
    return removed
