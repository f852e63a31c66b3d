"""
Query Service - historical reads, latest-per-sensor and windowed statistics
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smarthouse.core.clock import as_utc, utcnow
from smarthouse.core.errors import NotFoundError
from smarthouse.models.alert import Alert
from smarthouse.models.telemetry import Telemetry

PERIODS = {
    "1h": timedelta(hours=1),
    "6h": timedelta(hours=6),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_PERIOD = "24h"


@dataclass
class SensorStats:
    device_id: str
    sensor_type: str
    average: float
    minimum: float
    maximum: float
    count: int
    last_value: float
    last_timestamp: datetime


def resolve_period(period: str | None) -> tuple[str, timedelta]:
    """Unknown period names fall back to 24h."""
    if period in PERIODS:
        return period, PERIODS[period]
    return DEFAULT_PERIOD, PERIODS[DEFAULT_PERIOD]


def clamp_limit(limit: int, max_limit: int) -> int:
    return max(1, min(int(limit), max_limit))


def _telemetry_filters(
    device_id: str | None = None,
    sensor_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list:
    filters = []
    if device_id:
        filters.append(Telemetry.device_id == device_id)
    if sensor_type:
        filters.append(Telemetry.sensor_type == sensor_type)
    if start is not None:
        filters.append(Telemetry.timestamp >= as_utc(start))
    if end is not None:
        filters.append(Telemetry.timestamp <= as_utc(end))
    return filters


def _latest_per_sensor(filters: list):
    """
    Subquery of the newest row id per (device_id, sensor_type).
    Equal timestamps are broken by the higher id (the later insert).
    """
    ranked = select(
        Telemetry.id.label("id"),
        func.row_number()
        .over(
            partition_by=(Telemetry.device_id, Telemetry.sensor_type),
            order_by=(Telemetry.timestamp.desc(), Telemetry.id.desc()),
        )
        .label("rn"),
    )
    if filters:
        ranked = ranked.where(and_(*filters))
    return ranked.subquery()


async def list_readings(
    session: AsyncSession,
    *,
    device_id: str | None = None,
    sensor_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    sort_order: str = "desc",
    limit: int = 100,
) -> list[Telemetry]:
    stmt = select(Telemetry)
    filters = _telemetry_filters(device_id, sensor_type, start, end)
    if filters:
        stmt = stmt.where(and_(*filters))

    if sort_order == "asc":
        stmt = stmt.order_by(Telemetry.timestamp.asc(), Telemetry.id.asc())
    else:
        stmt = stmt.order_by(Telemetry.timestamp.desc(), Telemetry.id.desc())

    result = await session.execute(stmt.limit(limit))
    return list(result.scalars().all())


async def latest_readings(session: AsyncSession, device_id: str | None = None) -> list[Telemetry]:
    """Newest reading for each (device, sensor type) pair."""
    ranked = _latest_per_sensor(_telemetry_filters(device_id=device_id))
    stmt = (
        select(Telemetry)
        .join(ranked, Telemetry.id == ranked.c.id)
        .where(ranked.c.rn == 1)
        .order_by(Telemetry.device_id, Telemetry.sensor_type)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def reading_stats(
    session: AsyncSession,
    *,
    device_id: str | None = None,
    sensor_type: str | None = None,
    period: str | None = DEFAULT_PERIOD,
    now: datetime | None = None,
) -> tuple[str, datetime, list[SensorStats]]:
    """
    avg/min/max/count/last per (device, sensor type) over the period.

    Returns (effective period, window start, stats).
    """
    period, span = resolve_period(period)
    start = (now or utcnow()) - span
    filters = _telemetry_filters(device_id, sensor_type, start=start)

    aggregates = (
        select(
            Telemetry.device_id,
            Telemetry.sensor_type,
            func.avg(Telemetry.value).label("avg"),
            func.min(Telemetry.value).label("min"),
            func.max(Telemetry.value).label("max"),
            func.count(Telemetry.id).label("count"),
        )
        .where(and_(*filters))
        .group_by(Telemetry.device_id, Telemetry.sensor_type)
        .order_by(Telemetry.device_id, Telemetry.sensor_type)
    )
    rows = (await session.execute(aggregates)).all()

    ranked = _latest_per_sensor(filters)
    last_rows = (
        await session.execute(
            select(Telemetry).join(ranked, Telemetry.id == ranked.c.id).where(ranked.c.rn == 1)
        )
    ).scalars().all()
    last = {(r.device_id, r.sensor_type): r for r in last_rows}

    stats = []
    for row in rows:
        last_record = last.get((row.device_id, row.sensor_type))
        if last_record is None:
            # Rows purged between the two queries
            continue
        stats.append(
            SensorStats(
                device_id=row.device_id,
                sensor_type=row.sensor_type,
                average=round(float(row.avg), 2),
                minimum=float(row.min),
                maximum=float(row.max),
                count=int(row.count),
                last_value=float(last_record.value),
                last_timestamp=as_utc(last_record.timestamp),
            )
        )
    return period, start, stats


async def list_alerts(
    session: AsyncSession,
    *,
    device_id: str | None = None,
    severity: str | None = None,
    acknowledged: bool | None = None,
    limit: int = 50,
) -> list[Alert]:
    stmt = select(Alert)
    if device_id:
        stmt = stmt.where(Alert.device_id == device_id)
    if severity:
        stmt = stmt.where(Alert.severity == severity)
    if acknowledged is not None:
        stmt = stmt.where(Alert.acknowledged == acknowledged)
    stmt = stmt.order_by(Alert.timestamp.desc(), Alert.id.desc()).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def acknowledge_alert(session: AsyncSession, alert_id: int) -> Alert:
    alert = await session.get(Alert, alert_id)
    if alert is None:
        raise NotFoundError("Alert not found")
    alert.acknowledged = True
    await session.commit()
    return alert
