"""
Structured Logging Infrastructure

JSON-formatted logging with correlation IDs so that a single admin request,
and every collaborator call made while serving it, can be traced end to end.
"""
import logging
import json
import sys
import time
import uuid
from datetime import datetime, timezone
from contextlib import contextmanager
from contextvars import ContextVar
from functools import wraps
from typing import Any, Iterator, Mapping

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Fields bound with log_context(), e.g. the schedule a load is working on
log_context_var: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def __init__(self, app_name: str | None = None) -> None:
        super().__init__()
        self.app_name = app_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.app_name:
            log_entry["app"] = self.app_name

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        context = getattr(record, "log_context", None)
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_entry["extra"] = record.extra_data

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class StructuredLogger(logging.Logger):
    """
    Logger whose level methods accept an ``extra_data`` mapping.

    Records also carry the fields bound with ``log_context`` at the time
    they are created, and report the caller's module, function and line.
    """

    def _log(
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: Mapping[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        extra_data: dict[str, Any] | None = None,
    ) -> None:
        extra = dict(extra or {})
        if extra_data:
            extra["extra_data"] = extra_data
        context = log_context_var.get()
        if context:
            extra["log_context"] = dict(context)
        # One extra frame: this override sits between the level method and Logger._log
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra or None,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


logging.setLoggerClass(StructuredLogger)


@contextmanager
def log_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """
    Attach ``fields`` to every record logged inside the block.

    Nested blocks merge their fields over the outer ones. The binding lives
    in a ContextVar, so it follows asyncio tasks created inside the block.
    """
    merged = {**(log_context_var.get() or {}), **fields}
    token = log_context_var.set(merged)
    try:
        yield merged
    finally:
        log_context_var.reset(token)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    app_name: str = "wasteroute"
) -> None:
    """
    Configure application logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting for production
        app_name: Application name stamped on every JSON entry
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter(app_name=app_name))
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | [%(correlation_id)s] | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        handler.addFilter(CorrelationIdFilter())

    root_logger.addHandler(handler)

    # Third-party noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


class CorrelationIdFilter(logging.Filter):
    """Filter that adds correlation_id to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True


def generate_correlation_id() -> str:
    """Generate a new correlation ID"""
    return str(uuid.uuid4())[:8]


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID for current context"""
    cid = correlation_id or generate_correlation_id()
    correlation_id_var.set(cid)
    return cid


def get_correlation_id() -> str:
    """Get current correlation ID, generating and persisting one if not set"""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance"""
    return logging.getLogger(name)  # type: ignore


def log_async_operation(operation_name: str):
    """Decorator for logging async operations with timing"""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            started = time.monotonic()

            logger.debug(
                f"Starting {operation_name}",
                extra_data={"operation": operation_name, "status": "started"}
            )

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Failed {operation_name}: {str(e)}",
                    extra_data={
                        "operation": operation_name,
                        "status": "failed",
                        "duration_seconds": round(time.monotonic() - started, 4),
                        "error": str(e)
                    },
                    exc_info=True
                )
                raise

            logger.debug(
                f"Completed {operation_name}",
                extra_data={
                    "operation": operation_name,
                    "status": "completed",
                    "duration_seconds": round(time.monotonic() - started, 4)
                }
            )
            return result

        return wrapper
    return decorator
