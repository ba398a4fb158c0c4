"""Initial migration - scheduling, booking and sequence tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
    )


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.TIMESTAMP(timezone=True),
        server_default=None if nullable else sa.text("NOW()"),
        nullable=nullable,
    )


def upgrade() -> None:
    """Upgrade database schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # Collaborator tables owned by registration and HR management
    op.create_table(
        "persons",
        _id(),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("middle_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.VARCHAR(length=20), nullable=True),
        sa.Column("phone", sa.VARCHAR(length=20), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "departments",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("code", sa.VARCHAR(length=20), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "staff",
        _id(),
        sa.Column("person_id", postgresql.UUID(), nullable=False),
        sa.Column("department_id", postgresql.UUID(), nullable=True),
        sa.Column("role", sa.VARCHAR(length=50), nullable=False),
        sa.Column("specialization", sa.VARCHAR(length=200), nullable=True),
        sa.Column("license_number", sa.VARCHAR(length=100), nullable=True),
        sa.Column("employment_status", sa.VARCHAR(length=20), server_default="active", nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["person_id"], ["persons.id"]),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("license_number"),
    )
    op.create_index("ix_staff_person_id", "staff", ["person_id"])
    op.create_index("ix_staff_department_id", "staff", ["department_id"])
    op.create_index("ix_staff_role", "staff", ["role"])

    op.create_table(
        "doctor_schedules",
        _id(),
        sa.Column("staff_id", postgresql.UUID(), nullable=False),
        sa.Column("day_of_week", sa.VARCHAR(length=10), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("location", sa.VARCHAR(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=True),
        sa.Column("effective_until", sa.Date(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("start_time < end_time", name="doctor_schedules_time_range_check"),
        sa.ForeignKeyConstraint(["staff_id"], ["staff.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_doctor_schedules_staff_id", "doctor_schedules", ["staff_id"])
    op.create_index("ix_doctor_schedules_day_of_week", "doctor_schedules", ["day_of_week"])

    op.create_table(
        "doctor_leaves",
        _id(),
        sa.Column("staff_id", postgresql.UUID(), nullable=False),
        sa.Column("leave_type", sa.VARCHAR(length=20), server_default="vacation", nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.VARCHAR(length=20), server_default="pending", nullable=False),
        sa.Column("approved_by", postgresql.UUID(), nullable=True),
        _timestamp("approved_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("start_date <= end_date", name="doctor_leaves_date_range_check"),
        sa.ForeignKeyConstraint(["staff_id"], ["staff.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_doctor_leaves_staff_id", "doctor_leaves", ["staff_id"])
    op.create_index("ix_doctor_leaves_status", "doctor_leaves", ["status"])

    op.create_table(
        "appointment_pricing",
        _id(),
        sa.Column("staff_id", postgresql.UUID(), nullable=True),
        sa.Column("department_id", postgresql.UUID(), nullable=True),
        sa.Column("appointment_type", sa.VARCHAR(length=30), nullable=False),
        sa.Column("base_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("extension_fee_per_30min", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("effective_from"),
        _timestamp("effective_until", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["staff_id"], ["staff.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appointment_pricing_staff_id", "appointment_pricing", ["staff_id"])
    op.create_index(
        "ix_appointment_pricing_department_id", "appointment_pricing", ["department_id"]
    )
    op.create_index(
        "ix_appointment_pricing_appointment_type", "appointment_pricing", ["appointment_type"]
    )

    # Tables owned by this service
    op.create_table(
        "id_sequences",
        _id(),
        sa.Column("sequence_type", sa.VARCHAR(length=30), nullable=False),
        sa.Column("prefix", sa.VARCHAR(length=10), nullable=False),
        sa.Column("padding_length", sa.Integer(), server_default="6", nullable=False),
        sa.Column("current_value", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reset_policy", sa.VARCHAR(length=10), server_default="yearly", nullable=False),
        sa.Column("epoch_key", sa.VARCHAR(length=8), nullable=False),
        _timestamp("last_updated"),
        sa.CheckConstraint("current_value >= 0", name="id_sequences_value_check"),
        sa.CheckConstraint(
            "reset_policy IN ('yearly', 'daily', 'never')",
            name="id_sequences_reset_policy_check",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sequence_type"),
    )

    op.create_table(
        "patients",
        _id(),
        sa.Column("person_id", postgresql.UUID(), nullable=False),
        sa.Column("mrn", sa.VARCHAR(length=30), nullable=False),
        sa.Column("patient_status", sa.VARCHAR(length=20), server_default="active", nullable=False),
        sa.Column("registration_type", sa.VARCHAR(length=20), nullable=False),
        sa.Column("primary_doctor_id", postgresql.UUID(), nullable=True),
        sa.Column("first_visit_date", sa.Date(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["person_id"], ["persons.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["primary_doctor_id"], ["staff.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("mrn"),
    )
    op.create_index("ix_patients_person_id", "patients", ["person_id"], unique=True)

    op.create_table(
        "appointments",
        _id(),
        sa.Column("appointment_number", sa.VARCHAR(length=30), nullable=False),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("department_id", postgresql.UUID(), nullable=True),
        sa.Column(
            "appointment_type", sa.VARCHAR(length=30), server_default="consultation", nullable=False
        ),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), server_default="30", nullable=False),
        sa.Column("time_extended_minutes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), server_default="scheduled", nullable=False),
        sa.Column("priority", sa.VARCHAR(length=20), server_default="normal", nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("extension_fee", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_status", sa.VARCHAR(length=20), server_default="pending", nullable=False),
        sa.Column("created_by", postgresql.UUID(), nullable=True),
        sa.Column("created_by_type", sa.VARCHAR(length=10), server_default="user", nullable=False),
        _timestamp("checked_in_at", nullable=True),
        _timestamp("started_at", nullable=True),
        _timestamp("completed_at", nullable=True),
        _timestamp("cancelled_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "status IN ('scheduled', 'rescheduled', 'checked_in', 'in_progress', "
            "'completed', 'cancelled', 'no_show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'cancelled')",
            name="appointments_payment_status_check",
        ),
        sa.CheckConstraint(
            "appointment_type IN ('consultation', 'follow_up', 'procedure', 'telemedicine')",
            name="appointments_type_check",
        ),
        sa.CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"]),
        sa.ForeignKeyConstraint(["doctor_id"], ["staff.id"]),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_number"),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_department_id", "appointments", ["department_id"])
    op.create_index(
        "idx_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"]
    )
    op.create_index(
        "uq_appointments_doctor_slot",
        "appointments",
        ["doctor_id", "appointment_date", "start_time"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )

    op.create_table(
        "appointment_history",
        _id(),
        sa.Column("appointment_id", postgresql.UUID(), nullable=False),
        sa.Column("action_type", sa.VARCHAR(length=20), nullable=False),
        sa.Column("previous_status", sa.VARCHAR(length=20), nullable=True),
        sa.Column("new_status", sa.VARCHAR(length=20), nullable=True),
        sa.Column("previous_date", sa.Date(), nullable=True),
        sa.Column("new_date", sa.Date(), nullable=True),
        sa.Column("previous_time", sa.Time(), nullable=True),
        sa.Column("new_time", sa.Time(), nullable=True),
        sa.Column("changed_by", postgresql.UUID(), nullable=True),
        sa.Column("changed_by_type", sa.VARCHAR(length=10), nullable=True),
        sa.Column("change_reason", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_appointment_history_appointment_id", "appointment_history", ["appointment_id"]
    )
    op.create_index("ix_appointment_history_created_at", "appointment_history", ["created_at"])

    op.create_table(
        "appointment_payments",
        _id(),
        sa.Column("appointment_id", postgresql.UUID(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_method", sa.VARCHAR(length=20), nullable=False),
        sa.Column("transaction_reference", sa.VARCHAR(length=100), nullable=True),
        sa.Column("payment_status", sa.VARCHAR(length=20), server_default="pending", nullable=False),
        _timestamp("paid_at", nullable=True),
        sa.Column("processed_by", postgresql.UUID(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("amount > 0", name="appointment_payments_amount_check"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_appointment_payments_appointment_id", "appointment_payments", ["appointment_id"]
    )
    op.create_index(
        "ix_appointment_payments_payment_status", "appointment_payments", ["payment_status"]
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("appointment_payments")
    op.drop_table("appointment_history")
    op.drop_index("uq_appointments_doctor_slot", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("patients")
    op.drop_table("id_sequences")
    op.drop_table("appointment_pricing")
    op.drop_table("doctor_leaves")
    op.drop_table("doctor_schedules")
    op.drop_table("staff")
    op.drop_table("departments")
    op.drop_table("persons")
