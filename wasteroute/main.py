"""
Waste Route Admin - Main FastAPI Application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wasteroute.core.config import settings
from wasteroute.core.logging import setup_logging, get_logger
from wasteroute.core.middleware import (
    CORRELATION_ID_HEADER,
    setup_exception_handlers,
    setup_middleware,
)
from wasteroute.api.dependencies.admin_auth import ADMIN_API_KEY_HEADER
from wasteroute.api.routes import router as api_router
from wasteroute.db.database import engine, Base
from wasteroute.db import models  # noqa: F401  registers every table on Base.metadata

# Setup logging before anything else
setup_logging(
    level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    json_format=settings.LOG_JSON and not settings.DEBUG,
    app_name=settings.APP_NAME
)

logger = get_logger(__name__)


def _parse_allowed_origins(raw: str) -> list[str]:
    """Parse comma-separated CORS origins string into a clean list."""
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


_OPENAPI_TAGS = [
    {
        "name": "Route Details",
        "description": "A schedule assembled with its driver, stations and per-stop completion status.",
    },
    {"name": "Schedules", "description": "Collection schedules, driver assignment and stop completions."},
    {"name": "TPS", "description": "Transfer point stations."},
    {"name": "Users", "description": "Admins, TPS officers and collection drivers."},
    {"name": "Health", "description": "Liveness and readiness checks."},
]


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Admin API for waste-collection routes and transfer point stations.",
    openapi_tags=_OPENAPI_TAGS,
    openapi_url="/openapi.json",
)

# Setup middleware (correlation ID, request logging)
setup_middleware(app)
setup_exception_handlers(app)

allowed_origins = _parse_allowed_origins(settings.ALLOWED_ORIGINS)

# Safe dev default to support local frontend development without opening CORS in production.
if not allowed_origins and settings.DEBUG:
    allowed_origins = [
        "http://localhost",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", ADMIN_API_KEY_HEADER, CORRELATION_ID_HEADER],
        expose_headers=[CORRELATION_ID_HEADER],
    )

app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup() -> None:
    """Initialize database tables on startup"""
    logger.info("Starting application", extra_data={"app_name": settings.APP_NAME})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


@app.on_event("shutdown")
async def shutdown() -> None:
    """Cleanup on shutdown"""
    logger.info("Shutting down application")
    await engine.dispose()
    logger.info("Database connections disposed")


@app.get(
    "/health",
    summary="Liveness check",
    description="Lightweight check that the process is up. Does not touch the database.",
    tags=["Health"],
)
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.get(
    "/health/ready",
    summary="Readiness check",
    description="Checks the database. Returns 503 with status=degraded when it is unavailable.",
    responses={
        200: {
            "description": "All dependencies are available",
            "content": {"application/json": {"example": {"status": "healthy", "db": "ok"}}},
        },
        503: {
            "description": "At least one dependency is unavailable",
            "content": {
                "application/json": {
                    "example": {"status": "degraded", "db": "error: db_unavailable"}
                }
            },
        },
    },
    tags=["Health"],
)
async def readiness_check() -> JSONResponse:
    from wasteroute.domain.services.health_service import check_readiness

    result = await check_readiness()
    status_code = 200 if result["status"] == "healthy" else 503
    return JSONResponse(content=result, status_code=status_code)
