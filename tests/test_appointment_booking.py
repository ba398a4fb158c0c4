"""Tests for the booking engine."""

import asyncio
from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    BadRequestException,
    ConfigurationException,
    ConflictException,
    MissingFieldException,
    NotFoundException,
)
from app.models.appointments import appointment_history, appointments
from app.models.patients import patients
from app.schemas.appointments import (
    AppointmentBookingRequest,
    AppointmentFilters,
    AppointmentStatus,
    AppointmentType,
    HistoryAction,
    PaymentStatus,
)
from app.schemas.auth import Actor, ActorKind
from app.schemas.sequences import SequenceType
from app.services.appointment_service import AppointmentService, add_minutes
from app.services.sequence_service import SequenceService


def test_add_minutes():
    """End times are computed in minutes and may not pass midnight."""
    assert add_minutes(time(9, 0), 30) == time(9, 30)
    assert add_minutes(time(9, 45), 90) == time(11, 15)
    with pytest.raises(BadRequestException):
        add_minutes(time(23, 30), 30)


@pytest.mark.asyncio
async def test_booking_past_midnight_is_rejected(db_session, seed, booking_data):
    """A late booking whose end would fall on the next day writes nothing."""
    service = AppointmentService(db_session)

    with pytest.raises(BadRequestException, match="same day"):
        await service.book_appointment(
            AppointmentBookingRequest(**{**booking_data, "start_time": time(23, 45)})
        )

    for table in (patients, appointments, appointment_history):
        count = await db_session.execute(select(func.count()).select_from(table))
        assert count.scalar() == 0
    await db_session.commit()

    late = await service.book_appointment(
        AppointmentBookingRequest(
            **{**booking_data, "start_time": time(23, 30), "duration_minutes": 15}
        )
    )
    assert late.end_time == time(23, 45)


@pytest.mark.asyncio
async def test_book_appointment(db_session, seed, booking_data, monday):
    """A booking creates the patient, prices the slot and numbers the appointment."""
    service = AppointmentService(db_session)

    result = await service.book_appointment(AppointmentBookingRequest(**booking_data))

    year = date.today().year
    assert result.appointment_number == f"APT-{year}-000001"
    assert result.status == AppointmentStatus.SCHEDULED
    assert result.payment_status == PaymentStatus.PENDING
    assert result.appointment_date == monday
    assert result.start_time == time(9, 0)
    assert result.end_time == time(9, 30)
    assert result.consultation_fee == Decimal("500.00")
    assert result.total_amount == Decimal("500.00")
    assert result.patient.mrn == f"MRN-{year}-000001"
    assert result.patient.first_name == "Juan"
    assert result.doctor.name == "Dr. Maria Santos"
    assert result.department.code == "IM"

    assert len(result.history) == 1
    entry = result.history[0]
    assert entry.action_type == HistoryAction.CREATED
    assert entry.previous_status is None
    assert entry.new_status == AppointmentStatus.SCHEDULED
    assert entry.change_reason == "First appointment - Patient record created"


@pytest.mark.asyncio
async def test_returning_patient_is_reused(db_session, seed, booking_data):
    """A second booking for the same person reuses the patient record."""
    service = AppointmentService(db_session)
    first = await service.book_appointment(AppointmentBookingRequest(**booking_data))

    second = await service.book_appointment(
        AppointmentBookingRequest(**{**booking_data, "start_time": time(10, 0)})
    )

    assert second.patient_id == first.patient_id
    assert second.history[0].change_reason == "Appointment created"
    assert second.appointment_number.endswith("000002")

    count = await db_session.execute(select(func.count()).select_from(patients))
    assert count.scalar() == 1
    await db_session.commit()


@pytest.mark.asyncio
async def test_registration_channel_follows_creator(db_session, seed, booking_data):
    """Staff bookings register walk-in patients, self-service bookings online ones."""
    service = AppointmentService(db_session)
    staff_actor = Actor(id=seed.staff_actor_id, kind=ActorKind.STAFF)

    walk_in = await service.book_appointment(
        AppointmentBookingRequest(**booking_data), actor=staff_actor
    )
    online = await service.book_appointment(
        AppointmentBookingRequest(
            **{**booking_data, "person_id": seed.second_person_id, "start_time": time(11, 0)}
        )
    )

    result = await db_session.execute(
        select(patients.c.id, patients.c.registration_type, patients.c.first_visit_date)
    )
    channels = {row.id: row.registration_type for row in result}
    await db_session.commit()

    assert channels[walk_in.patient_id] == "walk_in"
    assert channels[online.patient_id] == "online"
    assert walk_in.created_by == seed.staff_actor_id
    assert walk_in.created_by_type == ActorKind.STAFF
    assert online.created_by_type == ActorKind.USER


@pytest.mark.asyncio
async def test_explicit_end_time_and_extended_duration(db_session, seed, booking_data):
    """A supplied end time is kept and longer bookings are priced up front."""
    service = AppointmentService(db_session)

    result = await service.book_appointment(
        AppointmentBookingRequest(
            **{**booking_data, "duration_minutes": 45, "end_time": time(9, 45)}
        )
    )

    assert result.end_time == time(9, 45)
    assert result.extension_fee == Decimal("200.00")
    assert result.total_amount == Decimal("700.00")


@pytest.mark.asyncio
async def test_missing_fields_are_all_reported(db_session, seed):
    """Every missing required field is named."""
    service = AppointmentService(db_session)

    with pytest.raises(MissingFieldException) as exc_info:
        await service.book_appointment(AppointmentBookingRequest(doctor_id=seed.doctor_id))

    assert exc_info.value.fields == ["person_id", "appointment_date", "start_time", "reason"]
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_unknown_doctor_or_person(db_session, seed, booking_data):
    """Bookings for unknown doctors, non-doctors or unknown persons are rejected."""
    service = AppointmentService(db_session)

    with pytest.raises(NotFoundException, match="Doctor not found"):
        await service.book_appointment(
            AppointmentBookingRequest(**{**booking_data, "doctor_id": uuid4()})
        )
    with pytest.raises(NotFoundException, match="Doctor not found"):
        await service.book_appointment(
            AppointmentBookingRequest(**{**booking_data, "doctor_id": seed.nurse_id})
        )
    with pytest.raises(NotFoundException, match="Person not found"):
        await service.book_appointment(
            AppointmentBookingRequest(**{**booking_data, "person_id": uuid4()})
        )


@pytest.mark.asyncio
async def test_taken_slot_is_a_conflict(db_session, seed, booking_data):
    """A second booking of the same doctor slot is rejected."""
    service = AppointmentService(db_session)
    await service.book_appointment(AppointmentBookingRequest(**booking_data))

    with pytest.raises(ConflictException, match="already booked"):
        await service.book_appointment(
            AppointmentBookingRequest(**{**booking_data, "person_id": seed.second_person_id})
        )


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_rebooked(db_session, seed, booking_data):
    """Cancelling releases the slot for a new booking."""
    service = AppointmentService(db_session)
    first = await service.book_appointment(AppointmentBookingRequest(**booking_data))
    await service.cancel(first.id, "Patient unavailable")

    again = await service.book_appointment(
        AppointmentBookingRequest(**{**booking_data, "person_id": seed.second_person_id})
    )

    assert again.status == AppointmentStatus.SCHEDULED
    assert again.start_time == first.start_time


@pytest.mark.asyncio
async def test_unique_index_guards_slot(db_session, seed, booking_data, monkeypatch):
    """The database index rejects a double booking the pre-check misses."""

    async def no_conflict(self, *args, **kwargs):
        return False

    service = AppointmentService(db_session)
    await service.book_appointment(AppointmentBookingRequest(**booking_data))
    monkeypatch.setattr(AppointmentService, "_has_conflict", no_conflict)

    with pytest.raises(ConflictException):
        await service.book_appointment(
            AppointmentBookingRequest(**{**booking_data, "person_id": seed.second_person_id})
        )

    state = await SequenceService(db_session).peek(SequenceType.APPOINTMENT)
    await db_session.commit()
    assert state.current_value == 1


@pytest.mark.asyncio
async def test_failed_booking_leaves_nothing_behind(db_session, seed, booking_data):
    """A booking failing on pricing creates no patient, number or history."""
    service = AppointmentService(db_session)

    with pytest.raises(ConfigurationException):
        await service.book_appointment(
            AppointmentBookingRequest(
                **{**booking_data, "appointment_type": AppointmentType.PROCEDURE}
            )
        )

    for table in (patients, appointments, appointment_history):
        count = await db_session.execute(select(func.count()).select_from(table))
        assert count.scalar() == 0
    mrn = await SequenceService(db_session).peek(SequenceType.MRN)
    await db_session.commit()
    assert mrn.current_value == 0

    result = await service.book_appointment(AppointmentBookingRequest(**booking_data))
    assert result.appointment_number == f"APT-{date.today().year}-000001"


@pytest.mark.asyncio
async def test_concurrent_bookings_of_one_slot(session_factory, seed, booking_data):
    """Of two simultaneous bookings for one slot exactly one succeeds."""

    async def attempt(person_id):
        async with session_factory() as session:
            return await AppointmentService(session).book_appointment(
                AppointmentBookingRequest(**{**booking_data, "person_id": person_id})
            )

    results = await asyncio.gather(
        attempt(seed.person_id),
        attempt(seed.second_person_id),
        return_exceptions=True,
    )

    booked = [r for r in results if not isinstance(r, Exception)]
    conflicts = [r for r in results if isinstance(r, ConflictException)]
    assert len(booked) == 1
    assert len(conflicts) == 1
    assert booked[0].appointment_number == f"APT-{date.today().year}-000001"


@pytest.mark.asyncio
async def test_concurrent_bookings_of_different_slots(session_factory, seed, booking_data):
    """Simultaneous bookings of different slots all succeed with distinct numbers."""

    async def attempt(start: time):
        async with session_factory() as session:
            return await AppointmentService(session).book_appointment(
                AppointmentBookingRequest(**{**booking_data, "start_time": start})
            )

    results = await asyncio.gather(
        *[attempt(start) for start in (time(9, 0), time(9, 30), time(10, 0), time(10, 30))]
    )

    numbers = {result.appointment_number for result in results}
    assert len(numbers) == 4
    assert len({result.patient_id for result in results}) == 1


@pytest.mark.asyncio
async def test_get_and_list_appointments(db_session, seed, booking_data, monday):
    """Appointments can be fetched by ID and listed with filters."""
    service = AppointmentService(db_session)
    late = await service.book_appointment(
        AppointmentBookingRequest(**{**booking_data, "start_time": time(11, 0)})
    )
    early = await service.book_appointment(AppointmentBookingRequest(**booking_data))
    await service.cancel(late.id, "Duplicate")

    fetched = await service.get_appointment(early.id)
    everything = await service.list_appointments(AppointmentFilters(doctor_id=seed.doctor_id))
    cancelled = await service.list_appointments(
        AppointmentFilters(status=AppointmentStatus.CANCELLED)
    )
    elsewhere = await service.list_appointments(
        AppointmentFilters(from_date=date(2000, 1, 1), to_date=date(2000, 1, 2))
    )
    await db_session.commit()

    assert fetched.appointment_number == early.appointment_number
    assert everything.total == 2
    assert [item.id for item in everything.items] == [early.id, late.id]
    assert [item.id for item in cancelled.items] == [late.id]
    assert elsewhere.total == 0

    with pytest.raises(NotFoundException):
        await service.get_appointment(uuid4())
    await db_session.commit()


def test_appointment_types():
    """All bookable types are listed with labels."""
    types = AppointmentService.get_appointment_types()

    assert [option.value for option in types] == list(AppointmentType)
    assert types[0].label == "General Consultation"
