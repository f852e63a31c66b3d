"""
Device liveness - keeps devices.last_seen current as telemetry arrives
"""

from datetime import datetime

from sqlalchemy import case, or_
from sqlalchemy.dialects import postgresql, sqlite

from smarthouse.core.clock import utcnow
from smarthouse.core.database import Database
from smarthouse.core.errors import StorageError
from smarthouse.models.device import Device

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class DeviceLivenessTracker:
    """
    Upserts the device row for every ingested reading.

    One INSERT ... ON CONFLICT (device_id) DO UPDATE statement, so two
    readings arriving together from a new device cannot create two rows.
    """

    def __init__(self, database: Database):
        self.database = database

    def _insert(self):
        try:
            return _DIALECT_INSERTS[self.database.dialect_name]
        except KeyError:
            raise StorageError(f"Upsert not supported on {self.database.dialect_name}") from None

    def build_upsert(self, device_id: str, location: str | None, now: datetime):
        devices = Device.__table__
        stmt = self._insert()(devices).values(
            device_id=device_id,
            name=device_id,
            location=location or "Unknown",
            status="online",
            created_at=now,
            last_seen=now,
        )
        updates = {
            # Keep the stored value if a concurrent request already wrote a newer one
            "last_seen": case(
                (
                    or_(devices.c.last_seen.is_(None), devices.c.last_seen < stmt.excluded.last_seen),
                    stmt.excluded.last_seen,
                ),
                else_=devices.c.last_seen,
            ),
        }
        if location:
            updates["location"] = stmt.excluded.location
        return stmt.on_conflict_do_update(index_elements=[devices.c.device_id], set_=updates)

    async def touch(self, device_id: str, location: str | None = None, now: datetime | None = None) -> None:
        stmt = self.build_upsert(device_id, location, now or utcnow())
        async with self.database.session() as session:
            await session.execute(stmt)
            await session.commit()
