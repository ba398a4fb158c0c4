"""Script to initialize the database for local development.

Creates all tables and, when none exist yet, global default pricing rules
so that bookings can be priced out of the box. Production databases are
managed with ``alembic upgrade head``.
"""

import asyncio
from decimal import Decimal

import structlog
from sqlalchemy import func, insert, select

from app.core.redis_client import get_cache_manager
from app.database import AsyncSessionLocal, engine, unit_of_work
from app.middleware.logging import configure_logging
from app.models import appointment_pricing, metadata
from app.schemas.appointments import AppointmentType

configure_logging()
logger = structlog.get_logger()

# (base fee, extension fee per 30 minutes)
DEFAULT_PRICING: dict[AppointmentType, tuple[Decimal, Decimal]] = {
    AppointmentType.CONSULTATION: (Decimal("500.00"), Decimal("200.00")),
    AppointmentType.FOLLOW_UP: (Decimal("300.00"), Decimal("150.00")),
    AppointmentType.PROCEDURE: (Decimal("1500.00"), Decimal("500.00")),
    AppointmentType.TELEMEDICINE: (Decimal("400.00"), Decimal("150.00")),
}


async def init_db() -> None:
    """Create all tables and seed default pricing."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("database_tables_created")

    async with AsyncSessionLocal() as session:
        async with unit_of_work(session, "seed_pricing", "Failed to seed default pricing"):
            result = await session.execute(
                select(func.count()).select_from(appointment_pricing)
            )
            already_configured = bool(result.scalar())
            if not already_configured:
                await session.execute(
                    insert(appointment_pricing),
                    [
                        {
                            "appointment_type": appointment_type.value,
                            "base_fee": base_fee,
                            "extension_fee_per_30min": extension_fee,
                        }
                        for appointment_type, (base_fee, extension_fee) in DEFAULT_PRICING.items()
                    ],
                )

    if already_configured:
        logger.info("pricing_already_configured")
    else:
        logger.info("default_pricing_seeded", rules=len(DEFAULT_PRICING))
        # Resolved rules cached by a running instance are now stale
        cache = get_cache_manager()
        if cache is not None:
            removed = cache.delete_pattern("pricing:*")
            logger.info("pricing_cache_cleared", keys=removed)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_db())
