"""
Alert model - threshold breach raised during ingestion
"""

from datetime import datetime
from enum import Enum
from sqlalchemy import Boolean, Float, String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from smarthouse.core.database import Base


class AlertType(str, Enum):
    HIGH_VALUE = "high_value"
    LOW_VALUE = "low_value"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Alert(Base):
    """Threshold alert. Only `acknowledged` changes after insert."""

    __tablename__ = "alerts"
    __table_args__ = (
        Index("ix_alerts_device_id_timestamp", "device_id", "timestamp"),
        Index("ix_alerts_severity_timestamp", "severity", "timestamp"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    device_id: Mapped[str] = mapped_column(String(100))
    sensor_type: Mapped[str] = mapped_column(String(20))

    type: Mapped[str] = mapped_column(String(20))
    severity: Mapped[str] = mapped_column(String(20))
    message: Mapped[str] = mapped_column(String(255))

    value: Mapped[float] = mapped_column(Float)
    threshold: Mapped[float] = mapped_column(Float)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    def __repr__(self) -> str:
        return f"<Alert {self.device_id} {self.sensor_type} {self.type}>"
