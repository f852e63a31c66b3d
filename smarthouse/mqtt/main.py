"""
Smart House - MQTT Bridge
Receives readings published by sensor nodes and runs them through the
same ingestion pipeline as POST /api/telemetry
"""

import asyncio
import json
import logging
import signal

import paho.mqtt.client as mqtt

from smarthouse.core.config import Settings, get_settings
from smarthouse.core.database import Database
from smarthouse.core.errors import StorageError, ValidationError
from smarthouse.models.telemetry import Telemetry
from smarthouse.services.ingestion import IngestionPipeline
from smarthouse.services.notifications import AlertNotifier

logger = logging.getLogger(__name__)


def parse_topic(topic: str, prefix: str) -> str | None:
    """Return the device id from `{prefix}/{device_id}/telemetry`."""
    parts = topic.split("/")
    if len(parts) != 3 or parts[0] != prefix or parts[2] != "telemetry" or not parts[1]:
        return None
    return parts[1]


class MQTTBridge:
    """Subscribes to device telemetry topics and feeds the ingestion pipeline."""

    def __init__(self, settings: Settings, pipeline: IngestionPipeline, client: mqtt.Client | None = None):
        self.settings = settings
        self.pipeline = pipeline
        self.client = client or mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect
        self.running = False
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def subscription(self) -> str:
        return f"{self.settings.mqtt_topic_prefix}/+/telemetry"

    @property
    def source_address(self) -> str:
        return f"mqtt:{self.settings.mqtt_broker}"

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Called when connected to MQTT broker."""
        logger.info("✅ Connected to MQTT broker: %s:%s", self.settings.mqtt_broker, self.settings.mqtt_port)
        client.subscribe(self.subscription)
        logger.info("📡 Subscribed to: %s", self.subscription)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        """Called when disconnected from MQTT broker."""
        logger.warning("⚠️ Disconnected from MQTT broker: %s", reason_code)

    def _on_message(self, client, userdata, msg):
        """Called from the paho network thread for every message."""
        device_id = parse_topic(msg.topic, self.settings.mqtt_topic_prefix)
        if device_id is None:
            return

        try:
            payload = json.loads(msg.payload.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Dropping malformed payload from %s: %s", device_id, e)
            return

        if self._loop:
            asyncio.run_coroutine_threadsafe(self.handle(device_id, payload), self._loop)

    async def handle(self, device_id: str, payload) -> Telemetry | None:
        """Ingest one decoded message. The topic's device id wins over the payload's."""
        if not isinstance(payload, dict):
            logger.warning("Dropping non-object payload from %s", device_id)
            return None

        try:
            return await self.pipeline.ingest({**payload, "deviceId": device_id}, self.source_address)
        except ValidationError as e:
            logger.warning("Rejected reading from %s: %s", device_id, e.message)
        except StorageError as e:
            logger.error("❌ Could not store reading from %s: %s", device_id, e.message)
        except Exception:
            # Runs as a detached future; nothing else would report it
            logger.exception("❌ Error processing telemetry from %s", device_id)
        return None

    async def run(self):
        """Main run loop."""
        self._loop = asyncio.get_running_loop()
        self.running = True

        logger.info("🚀 Starting MQTT bridge...")
        logger.info("📡 Connecting to %s:%s", self.settings.mqtt_broker, self.settings.mqtt_port)

        self.client.connect(self.settings.mqtt_broker, self.settings.mqtt_port, 60)

        # paho runs its network loop in a background thread
        self.client.loop_start()

        try:
            while self.running:
                await asyncio.sleep(1)
        finally:
            self.client.loop_stop()
            self.client.disconnect()
            logger.info("⏹️ MQTT bridge stopped")

    def stop(self):
        """Stop the bridge."""
        self.running = False


async def main():
    """Entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    database = Database.from_settings(settings)
    await database.connect(create_schema=settings.database_auto_create)
    notifier = AlertNotifier.from_settings(settings)
    bridge = MQTTBridge(settings, IngestionPipeline.build(database, settings, notifier))

    # Handle shutdown signals
    def signal_handler(sig, frame):
        logger.info("⏹️ Shutting down...")
        bridge.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await bridge.run()
    finally:
        if notifier is not None:
            await notifier.close()
        await database.dispose()


def run() -> None:
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
