# Database models
from smarthouse.models.alert import Alert, AlertSeverity, AlertType
from smarthouse.models.device import Device
from smarthouse.models.telemetry import Telemetry

__all__ = ["Alert", "AlertSeverity", "AlertType", "Device", "Telemetry"]
