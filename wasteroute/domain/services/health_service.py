"""
Health Service - dependency checks behind the readiness endpoint.

Two levels:
- liveness: the process is up (no dependency checks)
- readiness: the database answers a trivial query
"""
from typing import Any

from sqlalchemy import text

from wasteroute.core.logging import get_logger
from wasteroute.db.database import AsyncSessionLocal

logger = get_logger(__name__)

_STATUS_HEALTHY = "healthy"
_STATUS_DEGRADED = "degraded"

_CHECK_OK = "ok"

# Infrastructure details are not exposed in the response
_ERROR_DB = "error: db_unavailable"


async def _check_db() -> str:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return _CHECK_OK
    except Exception as e:
        logger.warning("Database health check failed", extra_data={"error": str(e)})
        return _ERROR_DB


async def check_readiness() -> dict[str, Any]:
    """
    Returns the overall status plus one entry per dependency:
    - status: "healthy" when every check passes, otherwise "degraded"
    - db: "ok" or "error: ..."
    """
    checks = {
        "db": await _check_db(),
    }

    all_ok = all(v == _CHECK_OK for v in checks.values())
    overall_status = _STATUS_HEALTHY if all_ok else _STATUS_DEGRADED

    if not all_ok:
        logger.warning("Readiness check degraded", extra_data=checks)

    return {"status": overall_status, **checks}
