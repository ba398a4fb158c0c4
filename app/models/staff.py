"""Department and staff tables (owned by HR management, read-only here)."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from app.models.base import metadata

departments = Table(
    "departments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    Column("code", String(20), unique=True),
    Column("location", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

staff = Table(
    "staff",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("person_id", Uuid, ForeignKey("persons.id"), nullable=False, index=True),
    Column("department_id", Uuid, ForeignKey("departments.id"), index=True),
    # doctor, nurse, receptionist, admin, ...
    Column("role", String(50), nullable=False, index=True),
    Column("specialization", String(200)),
    Column("license_number", String(100), unique=True),
    Column("employment_status", String(20), nullable=False, server_default="active"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
