"""Patient record resolution for bookings."""

from datetime import date
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.patients import patients
from app.schemas.auth import ActorKind
from app.schemas.sequences import SequenceType
from app.services.sequence_service import SequenceService

logger = structlog.get_logger()

REGISTRATION_CHANNELS = {
    ActorKind.USER: "online",
    ActorKind.STAFF: "walk_in",
}


class PatientService:
    """Service resolving the patient record behind a person."""

    def __init__(self, db: AsyncSession, sequences: SequenceService | None = None):
        """Initialize service with database session."""
        self.db = db
        self.sequences = sequences or SequenceService(db)

    async def get_by_person(self, person_id: UUID) -> dict[str, Any] | None:
        """Get the patient record of a person, or None."""
        result = await self.db.execute(select(patients).where(patients.c.person_id == person_id))
        row = result.fetchone()
        return dict(row._mapping) if row else None

    async def get_or_create(
        self,
        person_id: UUID,
        created_by_type: ActorKind,
        first_visit_date: date,
        primary_doctor_id: UUID | None = None,
    ) -> tuple[dict[str, Any], bool]:
        """
        Resolve a person's patient record, registering it on first booking.

        Runs inside the caller's transaction; the MRN is only consumed if
        the caller commits.

        Args:
            person_id: Person being booked
            created_by_type: Who is booking, decides the registration channel
            first_visit_date: Date of the first appointment
            primary_doctor_id: Doctor of the first appointment

        Returns:
            Patient record and whether it was created now
        """
        existing = await self.get_by_person(person_id)
        if existing:
            return existing, False

        mrn = await self.sequences.next_id(SequenceType.MRN)
        stmt = (
            insert(patients)
            .values(
                person_id=person_id,
                mrn=mrn,
                patient_status="active",
                registration_type=REGISTRATION_CHANNELS[ActorKind(created_by_type)],
                primary_doctor_id=primary_doctor_id,
                first_visit_date=first_visit_date,
            )
            .returning(patients)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()

        logger.info("patient_registered", person_id=str(person_id), mrn=mrn)
        return dict(row._mapping), True
