"""Appointment, history and payment tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Time,
    Uuid,
    func,
    text,
)

from app.models.base import metadata

# Name of the index guarding one live appointment per doctor slot
SLOT_UNIQUE_INDEX = "uq_appointments_doctor_slot"

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("appointment_number", String(30), nullable=False, unique=True),
    # References
    Column("patient_id", Uuid, ForeignKey("patients.id"), nullable=False, index=True),
    Column("doctor_id", Uuid, ForeignKey("staff.id"), nullable=False),
    Column("department_id", Uuid, ForeignKey("departments.id"), nullable=True, index=True),
    # Slot
    Column("appointment_type", String(30), nullable=False, server_default="consultation"),
    Column("appointment_date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("duration_minutes", Integer, nullable=False, server_default="30"),
    Column("time_extended_minutes", Integer, nullable=False, server_default="0"),
    # Status management
    Column("status", String(20), nullable=False, server_default="scheduled"),
    Column("priority", String(20), nullable=False, server_default="normal"),
    Column("reason", Text, nullable=False),
    Column("notes", Text, nullable=True),
    # Billing
    Column("consultation_fee", Numeric(10, 2), nullable=False),
    Column("extension_fee", Numeric(10, 2), nullable=False, server_default="0"),
    Column("total_amount", Numeric(10, 2), nullable=False),
    Column("payment_status", String(20), nullable=False, server_default="pending"),
    # Attribution
    Column("created_by", Uuid, nullable=True),
    Column("created_by_type", String(10), nullable=False, server_default="user"),
    # Audit fields
    Column("checked_in_at", DateTime(timezone=True), nullable=True),
    Column("started_at", DateTime(timezone=True), nullable=True),
    Column("completed_at", DateTime(timezone=True), nullable=True),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'rescheduled', 'checked_in', 'in_progress', "
        "'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "payment_status IN ('pending', 'paid', 'cancelled')",
        name="appointments_payment_status_check",
    ),
    CheckConstraint(
        "appointment_type IN ('consultation', 'follow_up', 'procedure', 'telemedicine')",
        name="appointments_type_check",
    ),
    CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
    Index("idx_appointments_doctor_date", "doctor_id", "appointment_date"),
    # At most one live appointment per (doctor, date, start_time)
    Index(
        SLOT_UNIQUE_INDEX,
        "doctor_id",
        "appointment_date",
        "start_time",
        unique=True,
        postgresql_where=text("status <> 'cancelled'"),
        sqlite_where=text("status <> 'cancelled'"),
    ),
)

# Append-only audit trail, one row per transition
appointment_history = Table(
    "appointment_history",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("action_type", String(20), nullable=False),
    Column("previous_status", String(20), nullable=True),
    Column("new_status", String(20), nullable=True),
    Column("previous_date", Date, nullable=True),
    Column("new_date", Date, nullable=True),
    Column("previous_time", Time, nullable=True),
    Column("new_time", Time, nullable=True),
    Column("changed_by", Uuid, nullable=True),
    Column("changed_by_type", String(10), nullable=True),
    Column("change_reason", Text, nullable=True),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    ),
)

appointment_payments = Table(
    "appointment_payments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("payment_method", String(20), nullable=False),
    Column("transaction_reference", String(100), nullable=True),
    Column("payment_status", String(20), nullable=False, server_default="pending", index=True),
    Column("paid_at", DateTime(timezone=True), nullable=True),
    Column("processed_by", Uuid, nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("amount > 0", name="appointment_payments_amount_check"),
)
