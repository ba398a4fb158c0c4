"""Scheduling service ASGI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from app.api.v1.router import api_router
from app.config import settings
from app.core.redis_client import check_redis_connection, close_redis_connection
from app.database import check_database_connection, engine
from app.middleware.error_handler import register_exception_handlers
from app.middleware.logging import CORRELATION_HEADER, LoggingMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger()

OPENAPI_TAGS = [
    {"name": "Health", "description": "Liveness and dependency checks."},
    {
        "name": "Appointments",
        "description": "Booking, lifecycle transitions, history ledger and payments.",
    },
    {"name": "Availability", "description": "Free slots of doctors and departments."},
    {
        "name": "Sequences",
        "description": "Human-readable identifiers such as APT, MRN and LAB numbers.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Verify the database and pricing cache on startup, release them on shutdown.

    A missing cache only slows pricing lookups down, so it is logged as a
    warning and startup continues.
    """
    logger.info(
        "scheduling_service_starting",
        environment=settings.environment,
        slot_minutes=settings.slot_minutes,
        availability_window_months=settings.availability_window_months,
    )

    if await check_database_connection():
        logger.info("database_connected")
    else:
        logger.error("database_connection_failed")

    if not settings.cache_enabled:
        logger.info("pricing_cache_disabled")
    elif await check_redis_connection():
        logger.info("pricing_cache_connected")
    else:
        logger.warning("pricing_cache_unreachable", note="Pricing lookups will hit the database")

    yield

    await engine.dispose()
    close_redis_connection()
    logger.info("scheduling_service_stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Hospital appointment scheduling and booking API",
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_HEADER, "X-Process-Time"],
)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.api_v1_prefix)

# Request rate, latency and in-flight gauges per route template
Instrumentator(
    should_group_status_codes=True,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/docs", "/redoc", "/openapi.json", "/metrics"],
    inprogress_name="scheduling_requests_inprogress",
    inprogress_labels=True,
).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Service banner with the API entry point."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "api": settings.api_v1_prefix,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
