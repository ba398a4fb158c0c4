"""Liveness and readiness endpoints."""

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import and_, func, or_, select

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection
from app.dependencies import DatabaseSession
from app.models.pricing import appointment_pricing

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str
    version: str
    environment: str


class ReadinessResponse(HealthResponse):
    """Readiness of the backing services and booking configuration."""

    database: str
    cache: str
    active_pricing_rules: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def health_check() -> HealthResponse:
    """Report that the process is up."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
)
async def detailed_health_check(db: DatabaseSession) -> ReadinessResponse:
    """
    Check the database, the pricing cache and that bookings can be priced.

    The cache is optional: when ``CACHE_ENABLED`` is off it is reported as
    ``disabled`` and does not degrade the service. Without any active
    pricing rule every booking would fail, so that also counts as degraded.

    Args:
        db: Database session

    Returns:
        Per-dependency status and the overall verdict
    """
    db_healthy = await check_database_connection()

    if settings.cache_enabled:
        cache_healthy = await check_redis_connection()
        cache_state = "healthy" if cache_healthy else "unhealthy"
    else:
        cache_healthy = True
        cache_state = "disabled"

    rule_count = 0
    if db_healthy:
        now = datetime.now(UTC)
        result = await db.execute(
            select(func.count())
            .select_from(appointment_pricing)
            .where(
                and_(
                    appointment_pricing.c.is_active.is_(True),
                    appointment_pricing.c.effective_from <= now,
                    or_(
                        appointment_pricing.c.effective_until.is_(None),
                        appointment_pricing.c.effective_until > now,
                    ),
                )
            )
        )
        rule_count = result.scalar() or 0
        await db.commit()

    healthy = db_healthy and cache_healthy and rule_count > 0
    if not healthy:
        logger.warning(
            "service_degraded",
            database=db_healthy,
            cache=cache_state,
            active_pricing_rules=rule_count,
        )

    return ReadinessResponse(
        status="healthy" if healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        cache=cache_state,
        active_pricing_rules=rule_count,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
