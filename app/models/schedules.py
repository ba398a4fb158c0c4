"""Doctor weekly schedule and leave tables (read-only collaborators)."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    String,
    Table,
    Text,
    Time,
    Uuid,
    func,
    text,
)

from app.models.base import metadata

doctor_schedules = Table(
    "doctor_schedules",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("staff_id", Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True),
    # Monday .. Sunday
    Column("day_of_week", String(10), nullable=False, index=True),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("location", String(100)),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("effective_from", Date),
    Column("effective_until", Date),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("start_time < end_time", name="doctor_schedules_time_range_check"),
)

doctor_leaves = Table(
    "doctor_leaves",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("staff_id", Uuid, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("leave_type", String(20), nullable=False, server_default="vacation"),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("reason", Text),
    # pending, approved, rejected, cancelled
    Column("status", String(20), nullable=False, server_default="pending", index=True),
    Column("approved_by", Uuid),
    Column("approved_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("start_date <= end_date", name="doctor_leaves_date_range_check"),
)
