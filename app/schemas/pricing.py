"""Pricing schemas."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

from app.schemas.appointments import AppointmentType


class PricingRule(BaseModel):
    """Resolved pricing rule for a doctor/department/appointment type."""

    id: UUID
    staff_id: UUID | None = None
    department_id: UUID | None = None
    appointment_type: AppointmentType
    base_fee: Decimal
    extension_fee_per_30min: Decimal

    model_config = {"from_attributes": True}


class FeeQuery(BaseModel):
    """Fee calculation request."""

    doctor_id: UUID
    department_id: UUID | None = None
    appointment_type: AppointmentType = AppointmentType.CONSULTATION
    duration_minutes: int = Field(default=30, ge=1, le=480)


class FeeBreakdown(BaseModel):
    """Result of a fee calculation."""

    base_fee: Decimal
    extended_minutes: int
    extension_fee: Decimal
    total_amount: Decimal

    @field_serializer("base_fee", "extension_fee", "total_amount", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)
