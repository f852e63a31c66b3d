"""
Smart House - API schemas
Responses use camelCase field names, matching what the firmware and app send
"""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from smarthouse.core.clock import as_utc

UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class TelemetryOut(CamelModel):
    id: int
    device_id: str
    sensor_type: str
    value: float
    unit: str
    location: str
    signal_strength: int | None = None
    timestamp: UtcDatetime
    received_at: UtcDatetime
    source_address: str | None = None


class SensorStatistics(CamelModel):
    average: float
    minimum: float
    maximum: float
    count: int
    last_value: float
    last_timestamp: UtcDatetime


class SensorStatsOut(CamelModel):
    device_id: str
    sensor_type: str
    statistics: SensorStatistics


class AlertOut(CamelModel):
    id: int
    device_id: str
    sensor_type: str
    type: str
    severity: str
    message: str
    value: float
    threshold: float
    timestamp: UtcDatetime
    acknowledged: bool


class DeviceOut(CamelModel):
    device_id: str
    name: str | None = None
    location: str | None = None
    type: str | None = None
    firmware: str | None = None
    status: str
    created_at: UtcDatetime
    last_seen: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None


class DeviceStatusOut(DeviceOut):
    is_online: bool
    last_seen_ago: str


class DeviceDetailOut(DeviceStatusOut):
    latest_readings: list[TelemetryOut] = []


class DeviceCreate(CamelModel):
    device_id: str | None = Field(None, max_length=100)
    name: str | None = Field(None, max_length=100)
    location: str | None = Field(None, max_length=100)
    type: str | None = Field(None, max_length=50)
    firmware: str | None = Field(None, max_length=50)


class DeviceUpdate(CamelModel):
    name: str | None = Field(None, max_length=100)
    location: str | None = Field(None, max_length=100)
    type: str | None = Field(None, max_length=50)
    firmware: str | None = Field(None, max_length=50)
    status: str | None = Field(None, max_length=20)
