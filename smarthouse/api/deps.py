import logging
from typing import AsyncIterator

from fastapi import Depends, Header, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smarthouse.core.config import Settings
from smarthouse.core.database import Database
from smarthouse.core.errors import StorageError
from smarthouse.core.security import verify_app_token, verify_device_key
from smarthouse.services.ingestion import IngestionPipeline

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def client_address(request: Request) -> str | None:
    return request.client.host if request.client else None


async def get_db_session(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    async with database.session() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error("Storage operation failed: %s", e)
            raise StorageError("Storage operation failed") from e


async def require_device(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    settings: Settings = Depends(get_app_settings),
) -> None:
    verify_device_key(settings, x_api_key, client_address(request))


async def require_app(
    request: Request,
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    verify_app_token(settings, authorization, client_address(request))
