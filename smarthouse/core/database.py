"""
Smart House - Database Configuration
Async SQLAlchemy engine owned by a single process-scoped handle
"""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from smarthouse.core.config import Settings
from smarthouse.core.errors import StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _engine_options(url: str, settings: Settings | None) -> dict[str, Any]:
    """Driver-specific timeouts for the configured backend."""
    if settings is None:
        return {}
    backend = make_url(url).get_backend_name()
    if backend == "postgresql":
        return {
            "pool_timeout": settings.database_pool_timeout,
            "connect_args": {
                "timeout": settings.database_connect_timeout,
                "command_timeout": settings.database_command_timeout,
            },
        }
    if backend == "sqlite":
        return {"connect_args": {"timeout": settings.database_connect_timeout}}
    return {}


class Database:
    """
    Storage gateway: owns the engine and hands out sessions.

    Created once by the application factory and injected into every
    component that touches storage. Call `connect()` at startup and
    `dispose()` on shutdown.
    """

    def __init__(self, url: str, settings: Settings | None = None, **engine_kwargs: Any):
        options = _engine_options(url, settings)
        options.update(engine_kwargs)
        self.url = make_url(url)
        self.engine = create_async_engine(
            url,
            echo=settings.database_echo if settings else False,
            pool_pre_ping=True,
            **options,
        )
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._connected = False

    @classmethod
    def from_settings(cls, settings: Settings, **engine_kwargs: Any) -> "Database":
        return cls(settings.database_url, settings, **engine_kwargs)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @property
    def is_connected(self) -> bool:
        return self._connected

    def session(self) -> AsyncSession:
        return self.session_maker()

    async def connect(self, create_schema: bool = False) -> None:
        """Verify connectivity (and optionally create tables)."""
        logger.info(
            "Connecting to database %s",
            self.url.render_as_string(hide_password=True),
        )
        try:
            await self.ping()
            if create_schema:
                await self.create_all()
        except SQLAlchemyError as e:
            logger.error("Database connection error: %s", e)
            raise StorageError("Database unavailable") from e
        self._connected = True
        logger.info("Database connected (%s)", self.dialect_name)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        # Import models so they register on Base.metadata
        import smarthouse.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        self._connected = False
        logger.info("Database connection closed")
