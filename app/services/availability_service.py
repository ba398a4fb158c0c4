"""Doctor and department availability planning."""

import calendar
from collections.abc import Iterable, Mapping
from datetime import date, time, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import BadRequestException
from app.database import guarded
from app.models.appointments import appointments
from app.schemas.appointments import AppointmentStatus, DoctorSummary
from app.schemas.availability import (
    AvailableSlot,
    DayAvailability,
    DayOfWeek,
    DepartmentAvailabilityResponse,
    DoctorAvailability,
    DoctorAvailabilityResponse,
)
from app.services.directory_service import DirectoryService

logger = structlog.get_logger()


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def generate_time_slots(start: time, end: time, interval_minutes: int) -> list[time]:
    """
    Split a working window into slot start times.

    Every slot starting before the window ends is produced, so a 09:00-10:45
    window with 30 minute slots yields 09:00, 09:30, 10:00 and 10:30.

    Args:
        start: Window start
        end: Window end
        interval_minutes: Slot length

    Returns:
        Slot start times in ascending order
    """
    if interval_minutes <= 0:
        raise BadRequestException("Slot interval must be positive")

    current = start.hour * 60 + start.minute
    limit = end.hour * 60 + end.minute
    slots = []
    while current < limit:
        slots.append(time(current // 60, current % 60))
        current += interval_minutes
    return slots


def _template_applies(schedule: Mapping[str, Any], day: date) -> bool:
    if schedule["day_of_week"] != DayOfWeek.for_date(day).value:
        return False
    if schedule.get("effective_from") and day < schedule["effective_from"]:
        return False
    if schedule.get("effective_until") and day > schedule["effective_until"]:
        return False
    return True


def _on_leave(leaves: Iterable[Mapping[str, Any]], day: date) -> bool:
    return any(leave["start_date"] <= day <= leave["end_date"] for leave in leaves)


def generate_available_slots(
    schedules: list[Mapping[str, Any]],
    leaves: list[Mapping[str, Any]],
    booked: set[tuple[date, time]],
    start_date: date,
    end_date: date,
    interval_minutes: int,
    doctor: DoctorSummary | None = None,
) -> list[AvailableSlot]:
    """
    Enumerate free slots of one doctor over an inclusive date range.

    Args:
        schedules: Active weekly templates
        leaves: Approved leave periods
        booked: (date, start_time) pairs of non-cancelled appointments
        start_date: First day of the range
        end_date: Last day of the range
        interval_minutes: Slot length
        doctor: Doctor to tag each slot with, if any

    Returns:
        Free slots ordered by date then time, without duplicates
    """
    slots: list[AvailableSlot] = []
    day = start_date
    while day <= end_date:
        if not _on_leave(leaves, day):
            times: set[time] = set()
            for schedule in schedules:
                if _template_applies(schedule, day):
                    times.update(
                        generate_time_slots(
                            schedule["start_time"], schedule["end_time"], interval_minutes
                        )
                    )

            for slot_time in sorted(times):
                if (day, slot_time) in booked:
                    continue
                slots.append(
                    AvailableSlot(
                        date=day,
                        time=slot_time,
                        day_of_week=DayOfWeek.for_date(day),
                        doctor_id=doctor.id if doctor else None,
                        doctor_name=doctor.name if doctor else None,
                    )
                )
        day += timedelta(days=1)
    return slots


def group_by_day(slots: list[AvailableSlot]) -> list[DayAvailability]:
    """Group ordered slots into one entry per day."""
    days: list[DayAvailability] = []
    for slot in slots:
        if not days or days[-1].date != slot.date:
            days.append(DayAvailability(date=slot.date, day_of_week=slot.day_of_week, times=[]))
        days[-1].times.append(slot.time)
    return days


class AvailabilityService:
    """Service computing free appointment slots. Results are never cached."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.directory = DirectoryService(db)

    def _resolve_range(
        self,
        start_date: date | None,
        end_date: date | None,
    ) -> tuple[date, date]:
        start = start_date or date.today()
        end = end_date or add_months(start, settings.availability_window_months)
        if end < start:
            raise BadRequestException("end_date must not be before start_date")
        return start, end

    async def _booked_slots(
        self,
        doctor_id: UUID,
        start_date: date,
        end_date: date,
    ) -> set[tuple[date, time]]:
        stmt = select(appointments.c.appointment_date, appointments.c.start_time).where(
            and_(
                appointments.c.doctor_id == doctor_id,
                appointments.c.appointment_date >= start_date,
                appointments.c.appointment_date <= end_date,
                appointments.c.status != AppointmentStatus.CANCELLED.value,
            )
        )
        result = await self.db.execute(stmt)
        return {(row.appointment_date, row.start_time) for row in result.fetchall()}

    async def _doctor_slots(
        self,
        doctor: DoctorSummary,
        start_date: date,
        end_date: date,
        tag: bool,
    ) -> list[AvailableSlot]:
        schedules = await self.directory.get_active_schedules(doctor.id)
        if not schedules:
            return []

        leaves = await self.directory.get_approved_leaves(doctor.id, start_date, end_date)
        booked = await self._booked_slots(doctor.id, start_date, end_date)

        return generate_available_slots(
            schedules,
            leaves,
            booked,
            start_date,
            end_date,
            settings.slot_minutes,
            doctor=doctor if tag else None,
        )

    async def get_doctor_availability(
        self,
        doctor_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> DoctorAvailabilityResponse:
        """
        Get free slots of a doctor.

        Args:
            doctor_id: Doctor staff ID
            start_date: First day, defaults to today
            end_date: Last day, defaults to the configured window after start

        Returns:
            Free slots as a flat list and grouped per day

        Raises:
            NotFoundException: If the doctor does not exist
            BadRequestException: If the range is inverted
        """
        start, end = self._resolve_range(start_date, end_date)

        async with guarded("get_doctor_availability", "Failed to get doctor availability"):
            doctor = await self.directory.get_doctor(doctor_id)
            slots = await self._doctor_slots(doctor, start, end, tag=False)

        logger.info(
            "doctor_availability_computed",
            doctor_id=str(doctor_id),
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            slot_count=len(slots),
        )

        return DoctorAvailabilityResponse(
            doctor_id=doctor_id,
            start_date=start,
            end_date=end,
            available_slots=slots,
            days=group_by_day(slots),
        )

    async def get_department_availability(
        self,
        department_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> DepartmentAvailabilityResponse:
        """
        Get free slots of every active doctor in a department.

        Raises:
            NotFoundException: If the department does not exist
            BadRequestException: If the range is inverted
        """
        start, end = self._resolve_range(start_date, end_date)

        async with guarded(
            "get_department_availability", "Failed to get department availability"
        ):
            await self.directory.get_department(department_id)
            doctors = await self.directory.list_department_doctors(department_id)

            entries = []
            for doctor in doctors:
                slots = await self._doctor_slots(doctor, start, end, tag=True)
                entries.append(DoctorAvailability(doctor=doctor, available_slots=slots))

        logger.info(
            "department_availability_computed",
            department_id=str(department_id),
            doctor_count=len(entries),
        )

        return DepartmentAvailabilityResponse(
            department_id=department_id,
            start_date=start,
            end_date=end,
            doctors=entries,
        )
