"""
Retention Service - purges expired telemetry and alerts
Runs as a background task alongside the API
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import delete

from smarthouse.core.clock import utcnow
from smarthouse.core.config import Settings
from smarthouse.core.database import Database
from smarthouse.models.alert import Alert
from smarthouse.models.telemetry import Telemetry

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Periodic delete of rows older than their retention window."""

    def __init__(
        self,
        database: Database,
        telemetry_retention: timedelta = timedelta(days=30),
        alert_retention: timedelta = timedelta(days=90),
        interval_seconds: float = 3600,
    ):
        self.database = database
        self.telemetry_retention = telemetry_retention
        self.alert_retention = alert_retention
        self.interval_seconds = interval_seconds
        self.running = False

    @classmethod
    def from_settings(cls, database: Database, settings: Settings) -> "RetentionSweeper":
        return cls(
            database,
            telemetry_retention=timedelta(days=settings.telemetry_retention_days),
            alert_retention=timedelta(days=settings.alert_retention_days),
            interval_seconds=settings.retention_sweep_interval_seconds,
        )

    async def start(self):
        """Start the sweep loop."""
        self.running = True
        logger.info("🧹 Retention sweeper started (every %ss)", self.interval_seconds)

        while self.running:
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Retention sweep error: {e}")

            await asyncio.sleep(self.interval_seconds)

    def stop(self):
        """Stop the sweeper."""
        self.running = False
        logger.info("🧹 Retention sweeper stopped")

    async def sweep(self, now: datetime | None = None) -> tuple[int, int]:
        """Delete expired rows. Returns (telemetry removed, alerts removed)."""
        now = now or utcnow()
        async with self.database.session() as session:
            telemetry = await session.execute(
                delete(Telemetry).where(Telemetry.timestamp < now - self.telemetry_retention)
            )
            alerts = await session.execute(
                delete(Alert).where(Alert.timestamp < now - self.alert_retention)
            )
            await session.commit()

        removed = (telemetry.rowcount, alerts.rowcount)
        if any(removed):
            logger.info("Retention sweep removed %s telemetry rows, %s alerts", *removed)
        return removed
