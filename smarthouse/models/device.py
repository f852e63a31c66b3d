"""
Device model - a sensor node (ESP32 or similar)
"""

from datetime import datetime
from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from smarthouse.core.database import Base


class Device(Base):
    """Registered or auto-discovered sensor node."""

    __tablename__ = "devices"
    __table_args__ = (
        Index("ix_devices_location", "location"),
        Index("ix_devices_last_seen", "last_seen"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    device_id: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Hardware info
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    firmware: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # "registered" until first telemetry, "online" when discovered by ingestion
    status: Mapped[str] = mapped_column(String(20), default="registered")
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Device {self.device_id} ({self.name or 'unnamed'})>"
