"""
FastAPI Middleware

- CorrelationIdMiddleware: accepts a safe ``X-Correlation-ID`` or issues one
- RequestLoggingMiddleware: one start and one completion record per request,
  tagged with the matched route template and its path parameters
- SecurityHeadersMiddleware: nosniff/HSTS, and ``no-store`` on admin API data
- Exception handlers rendering ``AppException.to_dict()``
"""
import re
import time
from typing import Any, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from wasteroute.api.dependencies.admin_auth import ADMIN_API_KEY_HEADER
from wasteroute.core.config import settings
from wasteroute.core.exceptions import AppException, ErrorCode
from wasteroute.core.logging import get_correlation_id, get_logger, set_correlation_id

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Client supplied ids end up in every log line of the request
_SAFE_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")

API_PREFIX = "/api"


def route_context(request: Request) -> dict[str, Any]:
    """
    Route template and path parameters of the matched endpoint.

    Only populated once routing has run, i.e. after ``call_next`` or inside
    an exception handler.
    """
    route = request.scope.get("route")
    return {
        "route": getattr(route, "path", None),
        "path_params": dict(request.scope.get("path_params") or {}),
    }


class CorrelationIdMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(CORRELATION_ID_HEADER)
        if incoming and not _SAFE_CORRELATION_ID.match(incoming):
            logger.warning(
                "Ignoring malformed correlation id",
                extra_data={"length": len(incoming)}
            )
            incoming = None

        correlation_id = set_correlation_id(incoming)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs admin API traffic. The API key value is never logged, only its presence."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.monotonic()
        request_data = {
            "method": request.method,
            "path": request.url.path,
            "admin_key_present": bool(request.headers.get(ADMIN_API_KEY_HEADER)),
        }

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra_data={
                **request_data,
                "query_params": dict(request.query_params),
                "client_host": request.client.host if request.client else None,
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra_data={
                    **request_data,
                    **route_context(request),
                    "duration_seconds": round(time.monotonic() - started, 4),
                    "error": str(e),
                },
                exc_info=True
            )
            raise

        log = logger.info if response.status_code < 400 else logger.warning
        log(
            f"Request completed: {request.method} {request.url.path}",
            extra_data={
                **request_data,
                **route_context(request),
                "status_code": response.status_code,
                "duration_seconds": round(time.monotonic() - started, 4),
            }
        )
        return response


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(
        f"Application exception: {exc.error_code.value}",
        extra_data={
            "error_code": exc.error_code.value,
            "message": exc.message,
            "details": exc.details,
            "path": request.url.path,
            **route_context(request),
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={CORRELATION_ID_HEADER: get_correlation_id()}
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render unexpected errors as ERR_1000 without leaking their message"""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra_data={
            "exception_type": type(exc).__name__,
            "message": str(exc),
            "path": request.url.path,
            **route_context(request),
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content=AppException(
            "An unexpected error occurred", ErrorCode.INTERNAL_ERROR
        ).to_dict(),
        headers={CORRELATION_ID_HEADER: get_correlation_id()}
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to every response.

    HSTS and ``upgrade-insecure-requests`` are only sent outside DEBUG so
    local development over plain HTTP keeps working. Admin API responses
    carry user and route data and are never cached.
    """

    def __init__(self, app: FastAPI, *, debug: bool = False) -> None:
        super().__init__(app)
        self._debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"

        if request.url.path.startswith(API_PREFIX):
            response.headers["Cache-Control"] = "no-store"

        if not self._debug:
            response.headers["Content-Security-Policy"] = "upgrade-insecure-requests"
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def setup_middleware(app: FastAPI) -> None:
    # Last added is outermost: SecurityHeaders -> CorrelationId -> RequestLogging -> app
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, debug=settings.DEBUG)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
