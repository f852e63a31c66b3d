"""
Smart House - Credentials
Pre-shared keys for sensor nodes (X-API-Key) and the mobile app (Bearer)
"""

import logging
import secrets

from smarthouse.core.config import Settings
from smarthouse.core.errors import AuthError

logger = logging.getLogger(__name__)


def _matches(presented: str, expected: str) -> bool:
    return secrets.compare_digest(presented.encode(), expected.encode())


def verify_device_key(settings: Settings, api_key: str | None, client: str | None = None) -> None:
    """Check the X-API-Key header sent by a sensor node."""
    if settings.auth_mode == "open":
        return
    if not api_key:
        raise AuthError("X-API-Key header is required")
    if not _matches(api_key, settings.device_api_key or ""):
        logger.warning("Invalid device API key attempt from %s", client or "unknown")
        raise AuthError("Invalid API key", forbidden=True)


def verify_app_token(settings: Settings, authorization: str | None, client: str | None = None) -> None:
    """Check the `Authorization: Bearer <key>` header sent by the mobile app."""
    if settings.auth_mode == "open":
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthError("Authorization header with Bearer token is required")
    if not _matches(token.strip(), settings.app_api_key or ""):
        logger.warning("Invalid app token attempt from %s", client or "unknown")
        raise AuthError("Invalid authorization token", forbidden=True)


def log_auth_mode(settings: Settings) -> None:
    if settings.auth_mode == "open":
        logger.warning(
            "auth_mode is 'open': device and app credentials are NOT checked "
            "(development mode)"
        )
