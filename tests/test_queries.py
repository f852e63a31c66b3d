"""
Tests for readings, latest-per-sensor, statistics and alerts endpoints.
"""

from datetime import timedelta

import pytest

from smarthouse.core.clock import utcnow
from smarthouse.models import Telemetry
from smarthouse.services import queries


async def _ingest_all(pipeline, readings):
    return [await pipeline.ingest(r) for r in readings]


async def _insert_at(database, device_id, sensor_type, value, timestamp):
    async with database.session() as session:
        session.add(
            Telemetry(
                device_id=device_id,
                sensor_type=sensor_type,
                value=value,
                unit="°C",
                location="Kitchen",
                timestamp=timestamp,
                received_at=timestamp,
            )
        )
        await session.commit()


class TestPeriodsAndLimits:
    def test_unknown_period_falls_back_to_24h(self):
        assert queries.resolve_period("2w") == ("24h", timedelta(hours=24))
        assert queries.resolve_period(None) == ("24h", timedelta(hours=24))

    def test_known_period(self):
        assert queries.resolve_period("7d") == ("7d", timedelta(days=7))

    @pytest.mark.parametrize("limit,expected", [(1, 1), (100, 100), (5000, 1000)])
    def test_clamp_limit(self, limit, expected):
        assert queries.clamp_limit(limit, 1000) == expected


class TestReadingsEndpoint:
    """Tests for GET /api/readings."""

    @pytest.mark.asyncio
    async def test_round_trip(self, client, pipeline, app_headers):
        record = await pipeline.ingest(
            {
                "deviceId": "esp32-kitchen",
                "sensorType": "pressure",
                "value": 1013.25,
                "location": "Kitchen",
                "signalStrength": -58,
            },
            "10.0.0.7",
        )

        response = await client.get("/api/readings", headers=app_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 1
        item = body["data"][0]
        assert item["id"] == record.id
        assert item["deviceId"] == "esp32-kitchen"
        assert item["sensorType"] == "pressure"
        assert item["value"] == 1013.25
        assert item["unit"] == "hPa"
        assert item["location"] == "Kitchen"
        assert item["signalStrength"] == -58
        assert item["sourceAddress"] == "10.0.0.7"
        assert item["timestamp"] == item["receivedAt"]

    @pytest.mark.asyncio
    async def test_filters_and_sort(self, client, pipeline, app_headers):
        await _ingest_all(
            pipeline,
            [
                {"deviceId": "a", "sensorType": "temperature", "value": 20},
                {"deviceId": "a", "sensorType": "humidity", "value": 50},
                {"deviceId": "b", "sensorType": "temperature", "value": 21},
                {"deviceId": "a", "sensorType": "temperature", "value": 22},
            ],
        )

        response = await client.get(
            "/api/readings",
            params={"deviceId": "a", "sensorType": "temperature", "sortOrder": "asc"},
            headers=app_headers,
        )

        values = [r["value"] for r in response.json()["data"]]
        assert values == [20, 22]

        response = await client.get("/api/readings", params={"limit": 2}, headers=app_headers)
        assert [r["value"] for r in response.json()["data"]] == [22, 21]

    @pytest.mark.asyncio
    async def test_date_range_inclusive(self, client, database, app_headers):
        t0 = utcnow().replace(microsecond=0) - timedelta(hours=3)
        for hours, value in ((0, 18.0), (1, 19.0), (2, 20.0)):
            await _insert_at(database, "esp32-kitchen", "temperature", value, t0 + timedelta(hours=hours))

        response = await client.get(
            "/api/readings",
            params={
                "startDate": t0.isoformat(),
                "endDate": (t0 + timedelta(hours=1)).isoformat(),
            },
            headers=app_headers,
        )

        assert sorted(r["value"] for r in response.json()["data"]) == [18.0, 19.0]

    @pytest.mark.asyncio
    async def test_limit_must_be_positive(self, client, app_headers):
        response = await client.get("/api/readings", params={"limit": 0}, headers=app_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_bad_date_rejected(self, client, app_headers):
        response = await client.get("/api/readings", params={"startDate": "yesterday"}, headers=app_headers)

        assert response.status_code == 400


class TestLatestReadings:
    """Tests for GET /api/readings/latest."""

    @pytest.mark.asyncio
    async def test_one_record_per_device_and_sensor(self, client, pipeline, app_headers):
        await _ingest_all(
            pipeline,
            [
                {"deviceId": "a", "sensorType": "temperature", "value": 20},
                {"deviceId": "a", "sensorType": "temperature", "value": 21},
                {"deviceId": "a", "sensorType": "humidity", "value": 45},
                {"deviceId": "b", "sensorType": "temperature", "value": 19},
                {"deviceId": "a", "sensorType": "humidity", "value": 47},
            ],
        )

        response = await client.get("/api/readings/latest", headers=app_headers)

        pairs = {(r["deviceId"], r["sensorType"]): r["value"] for r in response.json()["data"]}
        assert pairs == {("a", "humidity"): 47, ("a", "temperature"): 21, ("b", "temperature"): 19}
        assert response.json()["count"] == 3

    @pytest.mark.asyncio
    async def test_newest_timestamp_wins_over_insert_order(self, client, database, app_headers):
        now = utcnow()
        await _insert_at(database, "a", "temperature", 25.0, now)
        await _insert_at(database, "a", "temperature", 15.0, now - timedelta(minutes=10))

        response = await client.get("/api/readings/latest", params={"deviceId": "a"}, headers=app_headers)

        assert [r["value"] for r in response.json()["data"]] == [25.0]


class TestReadingStats:
    """Tests for GET /api/readings/stats."""

    @pytest.mark.asyncio
    async def test_statistics(self, client, pipeline, app_headers):
        await _ingest_all(
            pipeline,
            [{"deviceId": "a", "sensorType": "temperature", "value": v} for v in (20, 22, 24)],
        )

        response = await client.get("/api/readings/stats", params={"period": "1h"}, headers=app_headers)

        body = response.json()
        assert body["period"] == "1h"
        assert "startDate" in body
        [entry] = body["data"]
        assert entry["deviceId"] == "a"
        assert entry["sensorType"] == "temperature"
        stats = entry["statistics"]
        assert stats["average"] == 22.0
        assert stats["minimum"] == 20
        assert stats["maximum"] == 24
        assert stats["count"] == 3
        assert stats["lastValue"] == 24

    @pytest.mark.asyncio
    async def test_average_rounded(self, client, pipeline, app_headers):
        await _ingest_all(
            pipeline,
            [{"deviceId": "a", "sensorType": "humidity", "value": v} for v in (40, 41, 41)],
        )

        response = await client.get("/api/readings/stats", headers=app_headers)

        assert response.json()["data"][0]["statistics"]["average"] == 40.67

    @pytest.mark.asyncio
    async def test_unknown_period_uses_24h(self, client, app_headers):
        response = await client.get("/api/readings/stats", params={"period": "fortnight"}, headers=app_headers)

        assert response.status_code == 200
        assert response.json()["period"] == "24h"
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_readings_outside_window_excluded(self, client, database, app_headers):
        now = utcnow()
        await _insert_at(database, "a", "temperature", 10.0, now - timedelta(hours=2))
        await _insert_at(database, "a", "temperature", 30.0, now - timedelta(minutes=5))

        response = await client.get("/api/readings/stats", params={"period": "1h"}, headers=app_headers)

        stats = response.json()["data"][0]["statistics"]
        assert stats["count"] == 1
        assert stats["average"] == 30.0


class TestAlertsEndpoint:
    """Tests for GET /api/alerts and acknowledgement."""

    @pytest.mark.asyncio
    async def test_list_and_acknowledge(self, client, pipeline, app_headers):
        await _ingest_all(
            pipeline,
            [
                {"deviceId": "a", "sensorType": "temperature", "value": 35},
                {"deviceId": "b", "sensorType": "humidity", "value": 10},
                {"deviceId": "a", "sensorType": "temperature", "value": 21},
            ],
        )

        response = await client.get("/api/alerts", headers=app_headers)
        alerts = response.json()["data"]
        assert [a["deviceId"] for a in alerts] == ["b", "a"]
        assert alerts[1]["type"] == "high_value"

        response = await client.get("/api/alerts", params={"deviceId": "a"}, headers=app_headers)
        [alert] = response.json()["data"]

        response = await client.patch(f"/api/alerts/{alert['id']}/acknowledge", headers=app_headers)
        assert response.status_code == 200
        assert response.json()["data"]["acknowledged"] is True

        response = await client.get("/api/alerts", params={"acknowledged": "false"}, headers=app_headers)
        assert [a["deviceId"] for a in response.json()["data"]] == ["b"]

    @pytest.mark.asyncio
    async def test_acknowledge_unknown_alert(self, client, app_headers):
        response = await client.patch("/api/alerts/999/acknowledge", headers=app_headers)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "not_found", "message": "Alert not found"}
