"""
Smart House - Errors
Domain exceptions and the handlers that render them as JSON envelopes
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class SmartHouseError(Exception):
    """Base error. Carries an HTTP status and a machine-readable category."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    category: str = "internal_error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra


class ValidationError(SmartHouseError):
    status_code = status.HTTP_400_BAD_REQUEST
    category = "validation_error"


class AuthError(SmartHouseError):
    status_code = status.HTTP_401_UNAUTHORIZED
    category = "unauthorized"

    def __init__(self, message: str, forbidden: bool = False, **extra: Any):
        super().__init__(message, **extra)
        if forbidden:
            self.status_code = status.HTTP_403_FORBIDDEN
            self.category = "forbidden"


class NotFoundError(SmartHouseError):
    status_code = status.HTTP_404_NOT_FOUND
    category = "not_found"


class ConflictError(SmartHouseError):
    status_code = status.HTTP_409_CONFLICT
    category = "conflict"


class StorageError(SmartHouseError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    category = "storage_error"


def error_body(category: str, message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": category, "message": message, **extra}


async def _smarthouse_error_handler(request: Request, exc: SmartHouseError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        error_body(exc.category, exc.message, **exc.extra),
        status_code=exc.status_code,
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        error_body("validation_error", "Invalid request", details=details),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        body = error_body("not_found", "Endpoint not found", path=request.url.path)
    else:
        body = error_body("http_error", str(exc.detail))
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def register_error_handlers(app: FastAPI, production: bool) -> None:
    """Attach envelope handlers for domain, validation, HTTP and unexpected errors."""

    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = "Internal server error" if production else str(exc) or type(exc).__name__
        return JSONResponse(
            error_body("internal_error", message),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    app.add_exception_handler(SmartHouseError, _smarthouse_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
