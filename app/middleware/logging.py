"""Structured logging configuration and request logging middleware."""

import logging
import sys
import time
import uuid
from collections.abc import Callable
from typing import Any

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings

CORRELATION_HEADER = "X-Correlation-ID"

# Scraped every few seconds; request events for these are logged at debug
PROBE_PATHS = frozenset({"/metrics", "/health", "/ping"})


def _add_service(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def configure_logging() -> None:
    """
    Configure structlog on top of the standard library logger.

    Every event carries the service name and environment. ``LOG_FORMAT``
    selects JSON lines for production or the coloured console renderer.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )
    # Requests are already logged by LoggingMiddleware with the correlation ID
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _is_probe(path: str) -> bool:
    return path in PROBE_PATHS or path.removeprefix(settings.api_v1_prefix) in PROBE_PATHS


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with a correlation ID.

    The ID is taken from the incoming ``X-Correlation-ID`` header or
    generated, bound into the structlog context for the duration of the
    request so service-level events carry it, and echoed on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Bind the correlation ID, time the request and log its outcome."""
        logger = structlog.get_logger()
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex[:12]
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            method=request.method,
            path=path,
        )

        probe = _is_probe(path)
        start_time = time.perf_counter()
        if not probe:
            logger.info(
                "request_started",
                client=request.client.host if request.client else None,
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        if response.status_code >= 400:
            log = logger.warning
        elif probe:
            log = logger.debug
        else:
            log = logger.info
        log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)
        return response
