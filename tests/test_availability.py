"""Tests for availability planning."""

from datetime import date, time, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import insert

from app.core.exceptions import BadRequestException, NotFoundException
from app.models.persons import persons
from app.models.schedules import doctor_leaves, doctor_schedules
from app.models.staff import staff
from app.schemas.appointments import AppointmentBookingRequest
from app.schemas.availability import DayOfWeek
from app.services.appointment_service import AppointmentService
from app.services.availability_service import (
    AvailabilityService,
    add_months,
    generate_available_slots,
    generate_time_slots,
)


def test_generate_time_slots_until_window_end():
    """A slot is offered whenever it starts before the window closes."""
    assert generate_time_slots(time(9, 0), time(10, 45), 30) == [
        time(9, 0),
        time(9, 30),
        time(10, 0),
        time(10, 30),
    ]
    assert generate_time_slots(time(9, 0), time(10, 0), 30) == [time(9, 0), time(9, 30)]


def test_generate_time_slots_short_window():
    """A window shorter than one slot still offers its start; an empty one offers nothing."""
    assert generate_time_slots(time(9, 0), time(9, 20), 30) == [time(9, 0)]
    assert generate_time_slots(time(9, 0), time(9, 0), 30) == []


def test_day_of_week_for_date():
    """Dates map to the day names used on templates."""
    assert DayOfWeek.for_date(date(2025, 3, 10)) == DayOfWeek.MONDAY
    assert DayOfWeek.for_date(date(2025, 3, 16)) == DayOfWeek.SUNDAY


def test_add_months_clamps_to_month_end():
    """Adding months never produces an invalid date."""
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)


def test_generate_available_slots_skips_leave_and_bookings():
    """Leave days and booked starts are excluded; templates are matched by day."""
    monday = date(2025, 3, 10)
    schedules = [
        {"day_of_week": "Monday", "start_time": time(9, 0), "end_time": time(10, 0)},
        {"day_of_week": "Wednesday", "start_time": time(14, 0), "end_time": time(15, 0)},
    ]
    leaves = [{"start_date": date(2025, 3, 17), "end_date": date(2025, 3, 17)}]
    booked = {(monday, time(9, 30))}

    slots = generate_available_slots(
        schedules, leaves, booked, monday, date(2025, 3, 17), 30
    )

    assert [(s.date, s.time) for s in slots] == [
        (monday, time(9, 0)),
        (date(2025, 3, 12), time(14, 0)),
        (date(2025, 3, 12), time(14, 30)),
    ]


def test_generate_available_slots_respects_effective_window():
    """Templates outside their effective dates are ignored for that day."""
    monday = date(2025, 3, 10)
    schedules = [
        {
            "day_of_week": "Monday",
            "start_time": time(9, 0),
            "end_time": time(9, 30),
            "effective_from": date(2025, 3, 17),
            "effective_until": None,
        }
    ]

    slots = generate_available_slots(schedules, [], set(), monday, date(2025, 3, 24), 30)

    assert [s.date for s in slots] == [date(2025, 3, 17), date(2025, 3, 24)]


def test_overlapping_templates_do_not_duplicate_slots():
    """Two templates covering the same hour produce each slot once."""
    monday = date(2025, 3, 10)
    schedules = [
        {"day_of_week": "Monday", "start_time": time(9, 0), "end_time": time(10, 0)},
        {"day_of_week": "Monday", "start_time": time(9, 30), "end_time": time(10, 30)},
    ]

    slots = generate_available_slots(schedules, [], set(), monday, monday, 30)

    assert [s.time for s in slots] == [time(9, 0), time(9, 30), time(10, 0)]


@pytest.mark.asyncio
async def test_doctor_availability(db_session, seed, monday):
    """Six half-hour slots every Monday morning."""
    service = AvailabilityService(db_session)

    result = await service.get_doctor_availability(seed.doctor_id, monday, monday)

    assert [slot.time for slot in result.available_slots] == [
        time(9, 0),
        time(9, 30),
        time(10, 0),
        time(10, 30),
        time(11, 0),
        time(11, 30),
    ]
    assert len(result.days) == 1
    assert result.days[0].day_of_week == DayOfWeek.MONDAY


@pytest.mark.asyncio
async def test_default_range_spans_three_months(db_session, seed):
    """Without dates the window runs from today for three months."""
    result = await AvailabilityService(db_session).get_doctor_availability(seed.doctor_id)

    assert result.start_date == date.today()
    assert result.end_date == add_months(date.today(), 3)
    assert len(result.days) >= 12
    assert all(day.day_of_week == DayOfWeek.MONDAY for day in result.days)


@pytest.mark.asyncio
async def test_booked_slot_is_removed_and_cancellation_frees_it(db_session, seed, monday):
    """Non-cancelled bookings hide their slot; cancelling releases it."""
    appointments = AppointmentService(db_session)
    booked = await appointments.book_appointment(
        AppointmentBookingRequest(
            person_id=seed.person_id,
            doctor_id=seed.doctor_id,
            appointment_date=monday,
            start_time=time(10, 0),
            reason="Check-up",
        )
    )
    service = AvailabilityService(db_session)

    before = await service.get_doctor_availability(seed.doctor_id, monday, monday)
    assert time(10, 0) not in [slot.time for slot in before.available_slots]

    await appointments.cancel(booked.id, "Patient request")
    after = await service.get_doctor_availability(seed.doctor_id, monday, monday)
    assert time(10, 0) in [slot.time for slot in after.available_slots]


@pytest.mark.asyncio
async def test_approved_leave_blocks_day(db_session, seed, monday):
    """Approved leave overlapping the range removes the day; pending leave does not."""
    following = monday + timedelta(days=7)
    await db_session.execute(
        insert(doctor_leaves),
        [
            {
                "staff_id": seed.doctor_id,
                "start_date": monday - timedelta(days=2),
                "end_date": monday,
                "status": "approved",
            },
            {
                "staff_id": seed.doctor_id,
                "start_date": following,
                "end_date": following,
                "status": "pending",
            },
        ],
    )
    await db_session.commit()

    result = await AvailabilityService(db_session).get_doctor_availability(
        seed.doctor_id, monday, following
    )

    assert [day.date for day in result.days] == [following]


@pytest.mark.asyncio
async def test_inactive_templates_yield_nothing(db_session, seed, monday):
    """A doctor with no active templates has no availability."""
    doctor_id = uuid4()
    person_id = uuid4()
    await db_session.execute(
        insert(persons).values(id=person_id, first_name="Leo", last_name="Cruz")
    )
    await db_session.execute(
        insert(staff).values(
            id=doctor_id, person_id=person_id, department_id=seed.department_id, role="doctor"
        )
    )
    await db_session.execute(
        insert(doctor_schedules).values(
            staff_id=doctor_id,
            day_of_week="Monday",
            start_time=time(9, 0),
            end_time=time(12, 0),
            is_active=False,
        )
    )
    await db_session.commit()

    result = await AvailabilityService(db_session).get_doctor_availability(
        doctor_id, monday, monday
    )

    assert result.available_slots == []


@pytest.mark.asyncio
async def test_unknown_doctor(db_session, seed):
    """Unknown doctors and non-doctor staff are not found."""
    service = AvailabilityService(db_session)

    with pytest.raises(NotFoundException):
        await service.get_doctor_availability(uuid4())
    with pytest.raises(NotFoundException):
        await service.get_doctor_availability(seed.nurse_id)


@pytest.mark.asyncio
async def test_inverted_range_rejected(db_session, seed):
    """End before start is a bad request."""
    with pytest.raises(BadRequestException):
        await AvailabilityService(db_session).get_doctor_availability(
            seed.doctor_id, date(2025, 3, 10), date(2025, 3, 9)
        )


@pytest.mark.asyncio
async def test_department_availability(db_session, seed, monday):
    """Department view covers its active doctors and tags every slot."""
    result = await AvailabilityService(db_session).get_department_availability(
        seed.department_id, monday, monday
    )

    assert [entry.doctor.id for entry in result.doctors] == [seed.doctor_id]
    slots = result.doctors[0].available_slots
    assert len(slots) == 6
    assert all(slot.doctor_id == seed.doctor_id for slot in slots)
    assert slots[0].doctor_name == "Dr. Maria Santos"


@pytest.mark.asyncio
async def test_unknown_department(db_session, seed):
    """Unknown departments are not found."""
    with pytest.raises(NotFoundException):
        await AvailabilityService(db_session).get_department_availability(uuid4())
