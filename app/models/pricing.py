"""Appointment pricing rules (maintained by billing, read-only here)."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Table,
    Uuid,
    func,
    text,
)

from app.models.base import metadata

appointment_pricing = Table(
    "appointment_pricing",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Doctor-specific rule when set; department rule when only department_id
    # is set; global default when both are NULL
    Column("staff_id", Uuid, ForeignKey("staff.id", ondelete="CASCADE"), index=True),
    Column("department_id", Uuid, ForeignKey("departments.id", ondelete="CASCADE"), index=True),
    Column("appointment_type", String(30), nullable=False, index=True),
    Column("base_fee", Numeric(10, 2), nullable=False),
    Column("extension_fee_per_30min", Numeric(10, 2), nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("effective_from", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("effective_until", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
