"""Patient model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    String,
    Table,
    Uuid,
    func,
)

from app.models.base import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "person_id",
        Uuid,
        ForeignKey("persons.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    # Medical record number issued from the "mrn" sequence
    Column("mrn", String(30), nullable=False, unique=True),
    Column("patient_status", String(20), nullable=False, server_default="active"),
    # online (self-service) or walk_in (registered by staff)
    Column("registration_type", String(20), nullable=False),
    Column("primary_doctor_id", Uuid, ForeignKey("staff.id", ondelete="SET NULL")),
    Column("first_visit_date", Date),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
