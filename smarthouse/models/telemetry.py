"""
Telemetry model - one sensor reading, append-only
"""

from datetime import datetime
from sqlalchemy import Integer, Float, String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from smarthouse.core.database import Base


class Telemetry(Base):
    """Validated sensor reading. Rows are never updated."""

    __tablename__ = "telemetry"
    __table_args__ = (
        Index("ix_telemetry_device_id_timestamp", "device_id", "timestamp"),
        Index("ix_telemetry_sensor_type_timestamp", "sensor_type", "timestamp"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Soft reference to devices.device_id (no FK, orphans are tolerated)
    device_id: Mapped[str] = mapped_column(String(100))
    sensor_type: Mapped[str] = mapped_column(String(20))

    # Sensor data
    value: Mapped[float] = mapped_column(Float)
    unit: Mapped[str] = mapped_column(String(20), default="")
    location: Mapped[str] = mapped_column(String(100), default="Unknown")
    signal_strength: Mapped[int | None] = mapped_column(Integer, nullable=True)  # RSSI, dBm

    # Timestamps (equal at write time)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    source_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<Telemetry {self.device_id} {self.sensor_type}={self.value}{self.unit}>"
