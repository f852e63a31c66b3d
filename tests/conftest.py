"""
Pytest configuration and fixtures for Smart House tests.
"""

import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from smarthouse.api.main import create_app  # noqa: E402
from smarthouse.core.config import Settings  # noqa: E402
from smarthouse.core.database import Database  # noqa: E402
from smarthouse.services.ingestion import IngestionPipeline  # noqa: E402

DEVICE_KEY = "device-secret"
APP_KEY = "app-secret"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Enforced credentials, file-backed SQLite, no background sweeper."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'smarthouse.db'}",
        auth_mode="enforced",
        device_api_key=DEVICE_KEY,
        app_api_key=APP_KEY,
        retention_sweep_enabled=False,
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """Connected database with all tables created."""
    db = Database.from_settings(settings)
    await db.connect(create_schema=True)
    yield db
    await db.dispose()


@pytest.fixture
def pipeline(database: Database, settings: Settings) -> IngestionPipeline:
    return IngestionPipeline.build(database, settings)


@pytest.fixture
def app(settings: Settings, database: Database):
    return create_app(settings, database)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app (lifespan is not run; `database` is already connected)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def device_headers() -> dict:
    return {"X-API-Key": DEVICE_KEY}


@pytest.fixture
def app_headers() -> dict:
    return {"Authorization": f"Bearer {APP_KEY}"}


@pytest.fixture
def sample_reading() -> dict:
    """Sample reading as sent by a sensor node."""
    return {
        "deviceId": "esp32-kitchen",
        "sensorType": "temperature",
        "value": 22.5,
        "location": "Kitchen",
        "signalStrength": -61,
    }
