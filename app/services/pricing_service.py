"""Appointment fee calculation."""

import math
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

import structlog
from sqlalchemy import and_, case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConfigurationException
from app.core.redis_client import CacheManager
from app.database import guarded
from app.models.pricing import appointment_pricing
from app.schemas.appointments import AppointmentType
from app.schemas.pricing import FeeBreakdown, PricingRule

logger = structlog.get_logger()


def calculate_cost(
    base_fee: Decimal,
    extension_fee_per_30min: Decimal,
    duration_minutes: int,
    base_minutes: int = 30,
) -> FeeBreakdown:
    """
    Price an appointment of a given length.

    The base fee covers the first ``base_minutes``; every started block of
    ``base_minutes`` beyond that is charged at the extension rate.

    Args:
        base_fee: Fee for the base duration
        extension_fee_per_30min: Fee per started extension block
        duration_minutes: Total appointment length
        base_minutes: Length covered by the base fee and of each extension block

    Returns:
        Fee breakdown
    """
    base_fee = Decimal(base_fee)
    rate = Decimal(extension_fee_per_30min)
    extended_minutes = max(0, duration_minutes - base_minutes)
    blocks = math.ceil(extended_minutes / base_minutes)
    extension_fee = rate * blocks

    return FeeBreakdown(
        base_fee=base_fee,
        extended_minutes=extended_minutes,
        extension_fee=extension_fee,
        total_amount=base_fee + extension_fee,
    )


class PricingService:
    """Service resolving pricing rules and computing fees."""

    def __init__(self, db: AsyncSession, cache: CacheManager | None = None):
        """Initialize service with database session and optional cache."""
        self.db = db
        self.cache = cache

    async def get_pricing(
        self,
        doctor_id: UUID,
        department_id: UUID | None,
        appointment_type: AppointmentType | str,
    ) -> PricingRule:
        """
        Resolve the pricing rule that applies to a booking.

        A doctor-specific rule wins over the department default, which wins
        over the global default. Only active rules whose effective window
        contains the current time are considered.

        Args:
            doctor_id: Doctor being booked
            department_id: Department of the booking, if any
            appointment_type: Appointment type

        Returns:
            Applicable pricing rule

        Raises:
            ConfigurationException: If no rule applies
        """
        appointment_type = AppointmentType(appointment_type)
        cache_key = f"pricing:{doctor_id}:{department_id}:{appointment_type.value}"

        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached:
                logger.debug("pricing_cache_hit", key=cache_key)
                return PricingRule.model_validate(cached)

        now = datetime.now(UTC)
        scope = [appointment_pricing.c.staff_id == doctor_id]
        if department_id is not None:
            scope.append(
                and_(
                    appointment_pricing.c.staff_id.is_(None),
                    appointment_pricing.c.department_id == department_id,
                )
            )
        scope.append(
            and_(
                appointment_pricing.c.staff_id.is_(None),
                appointment_pricing.c.department_id.is_(None),
            )
        )

        specificity = case(
            (appointment_pricing.c.staff_id.is_not(None), 0),
            (appointment_pricing.c.department_id.is_not(None), 1),
            else_=2,
        )

        stmt = (
            select(appointment_pricing)
            .where(
                and_(
                    appointment_pricing.c.appointment_type == appointment_type.value,
                    appointment_pricing.c.is_active.is_(True),
                    appointment_pricing.c.effective_from <= now,
                    or_(
                        appointment_pricing.c.effective_until.is_(None),
                        appointment_pricing.c.effective_until > now,
                    ),
                    or_(*scope),
                )
            )
            .order_by(specificity, appointment_pricing.c.effective_from.desc())
            .limit(1)
        )

        async with guarded("get_pricing", "Failed to calculate appointment fee"):
            result = await self.db.execute(stmt)
            row = result.fetchone()

        if not row:
            logger.warning(
                "pricing_not_configured",
                doctor_id=str(doctor_id),
                department_id=str(department_id) if department_id else None,
                appointment_type=appointment_type.value,
            )
            raise ConfigurationException(
                "Failed to calculate appointment fee: no pricing configured for "
                f"{appointment_type.value} appointments"
            )

        rule = PricingRule.model_validate(dict(row._mapping))

        if self.cache:
            self.cache.set_json(
                cache_key, rule.model_dump(mode="json"), ttl=settings.pricing_cache_ttl
            )

        return rule

    async def calculate_fee(
        self,
        doctor_id: UUID,
        department_id: UUID | None,
        appointment_type: AppointmentType | str,
        duration_minutes: int,
    ) -> FeeBreakdown:
        """Compute the fee of a booking from the applicable pricing rule."""
        rule = await self.get_pricing(doctor_id, department_id, appointment_type)
        return calculate_cost(
            rule.base_fee,
            rule.extension_fee_per_30min,
            duration_minutes,
            base_minutes=settings.base_consultation_minutes,
        )
