"""
Tests for the retention sweeper.
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select

from smarthouse.core.clock import utcnow
from smarthouse.models import Alert, Telemetry
from smarthouse.services.retention import RetentionSweeper


def _telemetry(value, timestamp):
    return Telemetry(
        device_id="esp32-kitchen",
        sensor_type="temperature",
        value=value,
        unit="°C",
        location="Kitchen",
        timestamp=timestamp,
        received_at=timestamp,
    )


def _alert(value, timestamp):
    return Alert(
        device_id="esp32-kitchen",
        sensor_type="temperature",
        type="high_value",
        severity="warning",
        message=f"temperature is above threshold: {value}°C (max: 30)",
        value=value,
        threshold=30,
        timestamp=timestamp,
        acknowledged=False,
    )


class TestRetentionSweeper:
    @pytest.mark.asyncio
    async def test_sweep_removes_expired_rows(self, database):
        now = utcnow()
        async with database.session() as session:
            session.add_all(
                [
                    _telemetry(20.0, now - timedelta(days=31)),
                    _telemetry(21.0, now - timedelta(days=29)),
                    _alert(35.0, now - timedelta(days=91)),
                    _alert(36.0, now - timedelta(days=31)),
                ]
            )
            await session.commit()

        sweeper = RetentionSweeper(database)
        removed = await sweeper.sweep(now=now)

        assert removed == (1, 1)
        async with database.session() as session:
            values = (await session.execute(select(Telemetry.value))).scalars().all()
            alert_values = (await session.execute(select(Alert.value))).scalars().all()
        assert values == [21.0]
        assert alert_values == [36.0]

    @pytest.mark.asyncio
    async def test_from_settings(self, database, settings):
        sweeper = RetentionSweeper.from_settings(database, settings)

        assert sweeper.telemetry_retention == timedelta(days=30)
        assert sweeper.alert_retention == timedelta(days=90)
        assert sweeper.interval_seconds == 3600

    @pytest.mark.asyncio
    async def test_nothing_to_remove(self, database):
        assert await RetentionSweeper(database).sweep() == (0, 0)

    @pytest.mark.asyncio
    async def test_loop_survives_sweep_error(self, database, caplog):
        sweeper = RetentionSweeper(database, interval_seconds=0)
        calls = []

        async def flaky_sweep(now=None):
            calls.append(now)
            if len(calls) == 1:
                raise RuntimeError("database is locked")
            sweeper.stop()
            return (0, 0)

        sweeper.sweep = flaky_sweep

        await asyncio.wait_for(sweeper.start(), timeout=5)

        assert len(calls) == 2
        assert sweeper.running is False
        assert "Retention sweep error: database is locked" in caplog.text
