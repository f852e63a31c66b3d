"""
Ingestion Service - validates, persists and post-processes sensor readings

Flow for one reading:
    validate_reading -> TelemetryWriter.write -> (liveness upsert | alert evaluation)

Anything failing before the write aborts the request. The two post-write
steps run concurrently and their failures are only logged: the telemetry
row is already durable.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from smarthouse.core.clock import utcnow
from smarthouse.core.config import Settings
from smarthouse.core.database import Database
from smarthouse.core.errors import StorageError, ValidationError
from smarthouse.models.telemetry import Telemetry
from smarthouse.services.alerts import AlertEvaluator
from smarthouse.services.liveness import DeviceLivenessTracker
from smarthouse.services.notifications import AlertNotifier

logger = logging.getLogger(__name__)

SENSOR_TYPES = ("temperature", "humidity", "motion", "light", "pressure", "gas")

DEFAULT_UNITS = {
    "temperature": "°C",
    "humidity": "%",
    "motion": "bool",
    "light": "lux",
    "pressure": "hPa",
    "gas": "ppm",
}

REQUIRED_FIELDS = ("deviceId", "sensorType", "value")

# Column sizes of the telemetry table
MAX_LENGTHS = {"deviceId": 100, "unit": 20, "location": 100}
SIGNAL_STRENGTH_RANGE = (-(2**31), 2**31 - 1)


@dataclass(frozen=True)
class Reading:
    """A reading that passed validation."""

    device_id: str
    sensor_type: str
    value: float
    unit: str | None = None
    location: str | None = None
    signal_strength: int | None = None


def default_unit(sensor_type: str) -> str:
    return DEFAULT_UNITS.get(sensor_type, "")


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_value(raw: Any, sensor_type: str) -> float:
    if isinstance(raw, bool):
        # Motion sensors report true/false
        if sensor_type != "motion":
            raise ValidationError("Field 'value' must be a number", field="value")
        return 1.0 if raw else 0.0
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Field 'value' is not a number", field="value") from None
    if not math.isfinite(value):
        raise ValidationError("Field 'value' must be a finite number", field="value")
    return value


def _coerce_signal_strength(raw: Any) -> int | None:
    if _is_missing(raw):
        return None
    if isinstance(raw, bool):
        raise ValidationError("Field 'signalStrength' must be an integer", field="signalStrength")
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(
            "Field 'signalStrength' is not an integer", field="signalStrength"
        ) from None
    low, high = SIGNAL_STRENGTH_RANGE
    if not low <= value <= high:
        raise ValidationError(
            f"Field 'signalStrength' is out of range: {value}", field="signalStrength"
        )
    return value


def _optional_text(payload: dict, field: str) -> str | None:
    raw = payload.get(field)
    if _is_missing(raw):
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"Field '{field}' must be a string", field=field)
    return _check_length(field, raw.strip())


def _check_length(field: str, value: str) -> str:
    max_length = MAX_LENGTHS[field]
    if len(value) > max_length:
        raise ValidationError(
            f"Field '{field}' is longer than {max_length} characters",
            field=field,
            maxLength=max_length,
        )
    return value


def validate_reading(payload: Any) -> Reading:
    """
    Check an inbound reading. Pure function, raises ValidationError.

    Required: deviceId, sensorType, value (0 is a valid value).
    Optional: unit, location, signalStrength (legacy firmware sends `rssi`).
    """
    if not isinstance(payload, dict):
        raise ValidationError("Reading must be a JSON object")

    missing = [field for field in REQUIRED_FIELDS if _is_missing(payload.get(field))]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            missing=missing,
            required=list(REQUIRED_FIELDS),
        )

    device_id = payload["deviceId"]
    if not isinstance(device_id, str):
        raise ValidationError("Field 'deviceId' must be a string", field="deviceId")

    sensor_type = payload["sensorType"]
    if sensor_type not in SENSOR_TYPES:
        raise ValidationError(
            f"Invalid sensor type: {sensor_type!r}",
            field="sensorType",
            validTypes=list(SENSOR_TYPES),
        )

    signal = payload.get("signalStrength")
    if signal is None:
        signal = payload.get("rssi")

    return Reading(
        device_id=_check_length("deviceId", device_id.strip()),
        sensor_type=sensor_type,
        value=_coerce_value(payload["value"], sensor_type),
        unit=_optional_text(payload, "unit"),
        location=_optional_text(payload, "location"),
        signal_strength=_coerce_signal_strength(signal),
    )


def build_telemetry_record(reading: Reading, source_address: str | None, now: datetime) -> Telemetry:
    return Telemetry(
        device_id=reading.device_id,
        sensor_type=reading.sensor_type,
        value=float(reading.value),
        unit=reading.unit or default_unit(reading.sensor_type),
        location=reading.location or "Unknown",
        signal_strength=reading.signal_strength,
        timestamp=now,
        received_at=now,
        source_address=source_address,
    )


class TelemetryWriter:
    """Insert-only persistence of telemetry rows."""

    def __init__(self, database: Database):
        self.database = database

    async def write(self, reading: Reading, source_address: str | None = None) -> Telemetry:
        record = build_telemetry_record(reading, source_address, utcnow())
        try:
            async with self.database.session() as session:
                session.add(record)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to persist telemetry from %s: %s", reading.device_id, e)
            raise StorageError("Failed to persist telemetry") from e
        return record


class IngestionPipeline:
    """Runs one reading through validation, persistence and post-processing."""

    def __init__(
        self,
        writer: TelemetryWriter,
        tracker: DeviceLivenessTracker,
        evaluator: AlertEvaluator,
        notifier: AlertNotifier | None = None,
    ):
        self.writer = writer
        self.tracker = tracker
        self.evaluator = evaluator
        self.notifier = notifier

    @classmethod
    def build(
        cls,
        database: Database,
        settings: Settings,
        notifier: AlertNotifier | None = None,
    ) -> "IngestionPipeline":
        return cls(
            TelemetryWriter(database),
            DeviceLivenessTracker(database),
            AlertEvaluator(database, settings.alert_thresholds),
            notifier,
        )

    async def ingest(self, payload: Any, source_address: str | None = None) -> Telemetry:
        reading = validate_reading(payload)
        record = await self.writer.write(reading, source_address)
        logger.info(
            "Telemetry: %s -> %s: %s%s",
            record.device_id,
            record.sensor_type,
            record.value,
            record.unit,
        )

        await asyncio.gather(
            self._update_liveness(reading),
            self._evaluate_alerts(record),
        )
        return record

    async def _update_liveness(self, reading: Reading) -> None:
        try:
            await self.tracker.touch(reading.device_id, reading.location)
        except Exception:
            logger.warning("Error updating device lastSeen for %s", reading.device_id, exc_info=True)

    async def _evaluate_alerts(self, record: Telemetry) -> None:
        try:
            alert = await self.evaluator.evaluate(record)
        except Exception:
            logger.warning("Error evaluating alerts for %s", record.device_id, exc_info=True)
            return

        if alert is not None and self.notifier is not None:
            try:
                await self.notifier.notify(alert)
            except Exception:
                logger.warning("Error sending alert notification for %s", record.device_id, exc_info=True)
