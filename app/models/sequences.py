"""Identifier sequence counters."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Table,
    Uuid,
    func,
)

from app.models.base import metadata

id_sequences = Table(
    "id_sequences",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("sequence_type", String(30), nullable=False, unique=True),
    Column("prefix", String(10), nullable=False),
    Column("padding_length", Integer, nullable=False, server_default="6"),
    Column("current_value", Integer, nullable=False, server_default="0"),
    # yearly, daily or never
    Column("reset_policy", String(10), nullable=False, server_default="yearly"),
    # "2025" for yearly, "20250310" for daily, "" for never
    Column("epoch_key", String(8), nullable=False),
    Column("last_updated", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("current_value >= 0", name="id_sequences_value_check"),
    CheckConstraint(
        "reset_policy IN ('yearly', 'daily', 'never')",
        name="id_sequences_reset_policy_check",
    ),
)
