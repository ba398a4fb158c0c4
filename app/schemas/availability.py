"""Availability schemas."""

import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.appointments import DoctorSummary


class DayOfWeek(str, Enum):
    """Day names as stored on weekly schedule templates."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def for_date(cls, day: datetime.date) -> "DayOfWeek":
        """Day of week of a calendar date."""
        return list(cls)[day.weekday()]


class AvailableSlot(BaseModel):
    """A free slot start time on a given day."""

    date: datetime.date
    time: datetime.time
    day_of_week: DayOfWeek
    doctor_id: UUID | None = None
    doctor_name: str | None = None


class DayAvailability(BaseModel):
    """Free slots of a single day."""

    date: datetime.date
    day_of_week: DayOfWeek
    times: list[datetime.time]


class DoctorAvailabilityResponse(BaseModel):
    """Availability of one doctor over a date range."""

    doctor_id: UUID
    start_date: datetime.date
    end_date: datetime.date
    available_slots: list[AvailableSlot] = Field(default_factory=list)
    days: list[DayAvailability] = Field(default_factory=list)


class DoctorAvailability(BaseModel):
    """One doctor's slots inside a department view."""

    doctor: DoctorSummary
    available_slots: list[AvailableSlot] = Field(default_factory=list)


class DepartmentAvailabilityResponse(BaseModel):
    """Combined availability of every active doctor in a department."""

    department_id: UUID
    start_date: datetime.date
    end_date: datetime.date
    doctors: list[DoctorAvailability] = Field(default_factory=list)
