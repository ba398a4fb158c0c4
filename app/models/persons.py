"""Person registry table (owned by the registration context, read-only here)."""

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, String, Table, Text, Uuid, func

from app.models.base import metadata

persons = Table(
    "persons",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("first_name", Text, nullable=False),
    Column("middle_name", Text),
    Column("last_name", Text, nullable=False),
    Column("date_of_birth", Date),
    Column("gender", String(20)),
    Column("phone", String(20)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
