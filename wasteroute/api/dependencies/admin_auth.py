"""
API key check for the admin console endpoints.

Usage:
    @router.get("/route-details/{schedule_id}")
    async def get_route_details(
        schedule_id: str,
        _: None = Depends(require_admin_api_key),
    ):
        ...
"""
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from wasteroute.core.config import settings
from wasteroute.core.logging import get_logger

logger = get_logger(__name__)

ADMIN_API_KEY_HEADER = "X-Admin-API-Key"

_api_key_header = APIKeyHeader(name=ADMIN_API_KEY_HEADER, auto_error=False)


async def require_admin_api_key(
    api_key: str | None = Depends(_api_key_header),
) -> None:
    """
    Validate the admin API key.

    401 when the header is missing, 403 when it does not match.
    When ADMIN_API_KEY is not configured every request is refused.
    """
    if not settings.ADMIN_API_KEY:
        logger.warning("Admin endpoint access refused: ADMIN_API_KEY is not configured")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="ADMIN_API_KEY is not configured",
        )

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key: the X-Admin-API-Key header is required",
        )

    if not secrets.compare_digest(api_key, settings.ADMIN_API_KEY):
        logger.warning("Admin endpoint access refused: invalid API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )
