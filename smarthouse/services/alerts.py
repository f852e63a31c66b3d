"""
Alert evaluation - static per-sensor-type thresholds
"""

import logging
from collections.abc import Mapping

from smarthouse.core.clock import utcnow
from smarthouse.core.config import ThresholdBand
from smarthouse.core.database import Database
from smarthouse.models.alert import Alert, AlertType
from smarthouse.models.telemetry import Telemetry

logger = logging.getLogger(__name__)


def format_number(value: float) -> str:
    """35.0 -> '35', 22.5 -> '22.5'."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def check_thresholds(record: Telemetry, thresholds: Mapping[str, ThresholdBand]) -> Alert | None:
    """Return an unsaved Alert if the reading is outside its band, else None."""
    band = thresholds.get(record.sensor_type)
    if band is None:
        return None

    value = float(record.value)
    reading = f"{format_number(value)}{record.unit or ''}"

    if value > band.high:
        alert_type = AlertType.HIGH_VALUE
        threshold = band.high
        message = f"{record.sensor_type} is above threshold: {reading} (max: {format_number(band.high)})"
    elif value < band.low:
        alert_type = AlertType.LOW_VALUE
        threshold = band.low
        message = f"{record.sensor_type} is below threshold: {reading} (min: {format_number(band.low)})"
    else:
        return None

    return Alert(
        device_id=record.device_id,
        sensor_type=record.sensor_type,
        type=alert_type.value,
        severity=band.severity,
        message=message,
        value=value,
        threshold=float(threshold),
        timestamp=utcnow(),
        acknowledged=False,
    )


class AlertEvaluator:
    """Checks a persisted reading and stores at most one alert for it."""

    def __init__(self, database: Database, thresholds: Mapping[str, ThresholdBand]):
        self.database = database
        self.thresholds = dict(thresholds)

    async def evaluate(self, record: Telemetry) -> Alert | None:
        alert = check_thresholds(record, self.thresholds)
        if alert is None:
            return None

        async with self.database.session() as session:
            session.add(alert)
            await session.commit()

        logger.info("🚨 Alert created: %s", alert.message)
        return alert
