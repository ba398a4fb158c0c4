"""Read-only lookups of people, staff, departments, schedules and leave."""

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.persons import persons
from app.models.schedules import doctor_leaves, doctor_schedules
from app.models.staff import departments, staff
from app.schemas.appointments import DepartmentSummary, DoctorSummary

DOCTOR_ROLE = "doctor"
ACTIVE_EMPLOYMENT = "active"
APPROVED_LEAVE = "approved"


def doctor_display_name(first_name: str, last_name: str) -> str:
    """Format a doctor's name for display."""
    return f"Dr. {first_name} {last_name}"


def _doctor_summary(row: Any) -> DoctorSummary:
    return DoctorSummary(
        id=row.id,
        name=doctor_display_name(row.first_name, row.last_name),
        specialization=row.specialization,
        department_id=row.department_id,
    )


class DirectoryService:
    """Lookups against tables owned by registration and HR management."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    def _doctor_query(self):
        return (
            select(
                staff.c.id,
                staff.c.specialization,
                staff.c.department_id,
                persons.c.first_name,
                persons.c.last_name,
            )
            .select_from(staff.join(persons, staff.c.person_id == persons.c.id))
            .where(staff.c.role == DOCTOR_ROLE)
        )

    async def get_doctor(self, doctor_id: UUID) -> DoctorSummary:
        """
        Get a doctor by staff ID.

        Raises:
            NotFoundException: If no staff member with the doctor role exists
        """
        doctor = await self.find_doctor(doctor_id)
        if doctor is None:
            raise NotFoundException("Doctor not found")
        return doctor

    async def find_doctor(self, doctor_id: UUID) -> DoctorSummary | None:
        """Get a doctor by staff ID, or None."""
        result = await self.db.execute(self._doctor_query().where(staff.c.id == doctor_id))
        row = result.fetchone()
        return _doctor_summary(row) if row else None

    async def list_department_doctors(self, department_id: UUID) -> list[DoctorSummary]:
        """List actively employed doctors of a department."""
        stmt = (
            self._doctor_query()
            .where(
                and_(
                    staff.c.department_id == department_id,
                    staff.c.employment_status == ACTIVE_EMPLOYMENT,
                )
            )
            .order_by(persons.c.last_name, persons.c.first_name)
        )
        result = await self.db.execute(stmt)
        return [_doctor_summary(row) for row in result.fetchall()]

    async def get_person(self, person_id: UUID) -> dict[str, Any]:
        """
        Get a person record.

        Raises:
            NotFoundException: If the person does not exist
        """
        result = await self.db.execute(select(persons).where(persons.c.id == person_id))
        row = result.fetchone()

        if not row:
            raise NotFoundException("Person not found")

        return dict(row._mapping)

    async def get_department(self, department_id: UUID) -> DepartmentSummary:
        """
        Get a department.

        Raises:
            NotFoundException: If the department does not exist
        """
        department = await self.find_department(department_id)
        if department is None:
            raise NotFoundException("Department not found")
        return department

    async def find_department(self, department_id: UUID) -> DepartmentSummary | None:
        """Get a department, or None."""
        result = await self.db.execute(
            select(departments).where(departments.c.id == department_id)
        )
        row = result.fetchone()
        return DepartmentSummary.model_validate(dict(row._mapping)) if row else None

    async def get_active_schedules(self, doctor_id: UUID) -> list[dict[str, Any]]:
        """Get a doctor's active weekly schedule templates."""
        stmt = (
            select(doctor_schedules)
            .where(
                and_(
                    doctor_schedules.c.staff_id == doctor_id,
                    doctor_schedules.c.is_active.is_(True),
                )
            )
            .order_by(doctor_schedules.c.start_time)
        )
        result = await self.db.execute(stmt)
        return [dict(row._mapping) for row in result.fetchall()]

    async def get_approved_leaves(
        self,
        doctor_id: UUID,
        start_date: date,
        end_date: date,
    ) -> list[dict[str, Any]]:
        """Get approved leave periods intersecting ``[start_date, end_date]``."""
        stmt = select(doctor_leaves).where(
            and_(
                doctor_leaves.c.staff_id == doctor_id,
                doctor_leaves.c.status == APPROVED_LEAVE,
                doctor_leaves.c.start_date <= end_date,
                doctor_leaves.c.end_date >= start_date,
            )
        )
        result = await self.db.execute(stmt)
        return [dict(row._mapping) for row in result.fetchall()]
