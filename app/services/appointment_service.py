"""Appointment service for booking and lifecycle business logic."""

from datetime import UTC, date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.appointment_state import AppointmentAction, ensure_transition
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    InvalidStateException,
    MissingFieldException,
    NotFoundException,
)
from app.core.redis_client import CacheManager
from app.database import guarded, unit_of_work
from app.models.appointments import (
    SLOT_UNIQUE_INDEX,
    appointment_history,
    appointment_payments,
    appointments,
)
from app.models.patients import patients
from app.models.persons import persons
from app.schemas.appointments import (
    APPOINTMENT_TYPE_DESCRIPTIONS,
    AppointmentBookingRequest,
    AppointmentDetailResponse,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentTypeOption,
    HistoryAction,
    HistoryEntryResponse,
    PatientSummary,
    PaymentCreate,
    PaymentRecordStatus,
    PaymentResponse,
    PaymentStatus,
)
from app.schemas.auth import Actor, ActorKind
from app.schemas.sequences import SequenceType
from app.services.directory_service import DirectoryService
from app.services.patient_service import PatientService
from app.services.pricing_service import PricingService
from app.services.sequence_service import SequenceService

logger = structlog.get_logger()

SLOT_TAKEN_MESSAGE = "This time slot is already booked"
REQUIRED_BOOKING_FIELDS = ("person_id", "doctor_id", "appointment_date", "start_time", "reason")


def add_minutes(start: time, minutes: int) -> time:
    """
    Add minutes to a time of day.

    Raises:
        BadRequestException: If the result falls on the next day
    """
    total = start.hour * 60 + start.minute + minutes
    if total >= 24 * 60:
        raise BadRequestException("Appointment must end on the same day it starts")
    return time(total // 60, total % 60, start.second)


def _append_note(existing: str | None, note: str) -> str:
    if existing:
        return f"{existing}\n{note}"
    return note


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _is_slot_violation(error: IntegrityError) -> bool:
    message = str(error.orig)
    return SLOT_UNIQUE_INDEX in message or "appointments.doctor_id" in message


class AppointmentService:
    """Service for booking appointments and driving their lifecycle."""

    def __init__(self, db: AsyncSession, cache: CacheManager | None = None):
        """Initialize service with database session and optional cache."""
        self.db = db
        self.directory = DirectoryService(db)
        self.pricing = PricingService(db, cache)
        self.sequences = SequenceService(db)
        self.patients = PatientService(db, self.sequences)

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    async def book_appointment(
        self,
        data: AppointmentBookingRequest,
        actor: Actor | None = None,
    ) -> AppointmentDetailResponse:
        """
        Book a new appointment.

        Patient registration, fee calculation, number issuance, the
        appointment row and its first history entry commit together or not
        at all.

        Args:
            data: Booking request
            actor: Authenticated caller, used when the request names no creator

        Returns:
            Booked appointment with patient, doctor, department and history

        Raises:
            MissingFieldException: If required fields are absent
            NotFoundException: If the doctor, person or department does not exist
            ConflictException: If the slot is already taken
            ConfigurationException: If no pricing rule applies
        """
        missing = [name for name in REQUIRED_BOOKING_FIELDS if not getattr(data, name)]
        if missing:
            raise MissingFieldException(missing)

        created_by = data.created_by or (actor.id if actor else None)
        created_by_type = data.created_by_type or (actor.kind if actor else ActorKind.USER)
        end_time = data.end_time or add_minutes(data.start_time, data.duration_minutes)
        if end_time <= data.start_time:
            raise BadRequestException("end_time must be after start_time")

        async with unit_of_work(self.db, "book_appointment", "Failed to book appointment"):
            doctor = await self.directory.get_doctor(data.doctor_id)
            await self.directory.get_person(data.person_id)

            department_id = data.department_id or doctor.department_id
            if data.department_id:
                await self.directory.get_department(data.department_id)

            patient, patient_created = await self.patients.get_or_create(
                data.person_id,
                created_by_type,
                first_visit_date=data.appointment_date,
                primary_doctor_id=doctor.id,
            )

            if await self._has_conflict(data.doctor_id, data.appointment_date, data.start_time):
                raise ConflictException(SLOT_TAKEN_MESSAGE)

            fee = await self.pricing.calculate_fee(
                doctor.id, department_id, data.appointment_type, data.duration_minutes
            )
            appointment_number = await self.sequences.next_id(SequenceType.APPOINTMENT)

            values = {
                "appointment_number": appointment_number,
                "patient_id": patient["id"],
                "doctor_id": doctor.id,
                "department_id": department_id,
                "appointment_type": data.appointment_type.value,
                "appointment_date": data.appointment_date,
                "start_time": data.start_time,
                "end_time": end_time,
                "duration_minutes": data.duration_minutes,
                "time_extended_minutes": 0,
                "status": AppointmentStatus.SCHEDULED.value,
                "priority": data.priority.value,
                "reason": data.reason,
                "consultation_fee": fee.base_fee,
                "extension_fee": fee.extension_fee,
                "total_amount": fee.total_amount,
                "payment_status": PaymentStatus.PENDING.value,
                "created_by": created_by,
                "created_by_type": ActorKind(created_by_type).value,
            }
            row = await self._write_slot(insert(appointments).values(**values))

            await self._append_history(
                row["id"],
                HistoryAction.CREATED,
                changed_by=created_by,
                changed_by_type=created_by_type,
                new_status=AppointmentStatus.SCHEDULED,
                new_date=data.appointment_date,
                new_time=data.start_time,
                change_reason=(
                    "First appointment - Patient record created"
                    if patient_created
                    else "Appointment created"
                ),
            )
            detail = await self._hydrate(row)

        logger.info(
            "appointment_booked",
            appointment_id=str(row["id"]),
            appointment_number=appointment_number,
            doctor_id=str(doctor.id),
            patient_id=str(patient["id"]),
            appointment_date=data.appointment_date.isoformat(),
            start_time=data.start_time.isoformat(),
        )
        return detail

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_appointment(self, appointment_id: UUID) -> AppointmentDetailResponse:
        """
        Get appointment by ID with related records.

        Raises:
            NotFoundException: If appointment not found
        """
        async with guarded("get_appointment", "Failed to get appointment"):
            result = await self.db.execute(
                select(appointments).where(appointments.c.id == appointment_id)
            )
            row = result.fetchone()

            if not row:
                raise NotFoundException("Appointment not found")

            return await self._hydrate(dict(row._mapping))

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list ordered by date then start time
        """
        conditions = []

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.appointment_type:
            conditions.append(appointments.c.appointment_type == filters.appointment_type.value)

        if filters.from_date:
            conditions.append(appointments.c.appointment_date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.appointment_date <= filters.to_date)

        async with guarded("list_appointments", "Failed to list appointments"):
            count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
            total_result = await self.db.execute(count_stmt)
            total = total_result.scalar() or 0

            offset = (filters.page - 1) * filters.page_size
            stmt = (
                select(appointments)
                .where(and_(*conditions))
                .order_by(appointments.c.appointment_date, appointments.c.start_time)
                .limit(filters.page_size)
                .offset(offset)
            )
            result = await self.db.execute(stmt)
            rows = result.fetchall()

        items = [AppointmentResponse.model_validate(dict(row._mapping)) for row in rows]

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def get_history(self, appointment_id: UUID) -> list[HistoryEntryResponse]:
        """Get the full ledger of an appointment, newest first."""
        async with guarded("get_appointment_history", "Failed to get appointment history"):
            await self._ensure_exists(appointment_id)
            return await self._history(appointment_id)

    async def get_payments(self, appointment_id: UUID) -> list[PaymentResponse]:
        """Get all payment attempts of an appointment."""
        async with guarded("get_appointment_payments", "Failed to get payment history"):
            await self._ensure_exists(appointment_id)
            return await self._payments(appointment_id)

    @staticmethod
    def get_appointment_types() -> list[AppointmentTypeOption]:
        """List bookable appointment types."""
        return [
            AppointmentTypeOption(value=value, label=label, description=description)
            for value, (label, description) in APPOINTMENT_TYPE_DESCRIPTIONS.items()
        ]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def check_in(
        self,
        appointment_id: UUID,
        actor: Actor | None = None,
    ) -> AppointmentDetailResponse:
        """
        Mark the patient as arrived.

        Raises:
            NotFoundException: If appointment not found
            InvalidStateException: If the appointment is not booked
        """
        async with unit_of_work(self.db, "check_in_appointment", "Failed to check in appointment"):
            current = await self._load_for_update(appointment_id)
            new_status = ensure_transition(current["status"], AppointmentAction.CHECK_IN)

            row = await self._apply(
                appointment_id,
                status=new_status.value,
                checked_in_at=datetime.now(UTC),
            )
            await self._record_transition(
                current,
                HistoryAction.CHECKED_IN,
                new_status,
                actor,
                "Patient checked in for appointment",
            )
            detail = await self._hydrate(row)

        logger.info("appointment_checked_in", appointment_id=str(appointment_id))
        return detail

    async def start_consultation(
        self,
        appointment_id: UUID,
        actor: Actor | None = None,
    ) -> AppointmentDetailResponse:
        """
        Start the consultation of a checked-in patient.

        Raises:
            NotFoundException: If appointment not found
            InvalidStateException: If the patient has not checked in
        """
        async with unit_of_work(self.db, "start_consultation", "Failed to start consultation"):
            current = await self._load_for_update(appointment_id)
            new_status = ensure_transition(
                current["status"], AppointmentAction.START_CONSULTATION
            )

            row = await self._apply(
                appointment_id,
                status=new_status.value,
                started_at=datetime.now(UTC),
            )
            await self._record_transition(
                current,
                HistoryAction.STARTED,
                new_status,
                actor,
                "Consultation started",
            )
            detail = await self._hydrate(row)

        logger.info("consultation_started", appointment_id=str(appointment_id))
        return detail

    async def extend(
        self,
        appointment_id: UUID,
        additional_minutes: int,
        actor: Actor | None = None,
    ) -> AppointmentDetailResponse:
        """
        Lengthen an ongoing appointment and reprice it.

        Args:
            appointment_id: Appointment ID
            additional_minutes: Minutes to add, must be positive
            actor: Caller performing the extension

        Returns:
            Updated appointment

        Raises:
            BadRequestException: If minutes are not positive or the end passes midnight
            InvalidStateException: If the appointment is not checked in or in progress
        """
        if additional_minutes <= 0:
            raise BadRequestException("additional_minutes must be greater than zero")

        async with unit_of_work(self.db, "extend_appointment", "Failed to extend appointment"):
            current = await self._load_for_update(appointment_id)
            new_status = ensure_transition(current["status"], AppointmentAction.EXTEND)

            new_duration = current["duration_minutes"] + additional_minutes
            end_time = add_minutes(current["start_time"], new_duration)
            fee = await self.pricing.calculate_fee(
                current["doctor_id"],
                current["department_id"],
                current["appointment_type"],
                new_duration,
            )

            row = await self._apply(
                appointment_id,
                duration_minutes=new_duration,
                time_extended_minutes=current["time_extended_minutes"] + additional_minutes,
                end_time=end_time,
                consultation_fee=fee.base_fee,
                extension_fee=fee.extension_fee,
                total_amount=fee.total_amount,
            )
            await self._record_transition(
                current,
                HistoryAction.EXTENDED,
                new_status,
                actor,
                f"Appointment extended by {additional_minutes} minutes",
            )
            detail = await self._hydrate(row)

        logger.info(
            "appointment_extended",
            appointment_id=str(appointment_id),
            additional_minutes=additional_minutes,
            total_amount=str(fee.total_amount),
        )
        return detail

    async def cancel(
        self,
        appointment_id: UUID,
        reason: str,
        actor: Actor | None = None,
    ) -> AppointmentDetailResponse:
        """
        Cancel an appointment and release its slot.

        Raises:
            BadRequestException: If no reason is given
            InvalidStateException: If the appointment is already finished
        """
        if not reason or not reason.strip():
            raise BadRequestException("Cancellation reason is required")

        async with unit_of_work(self.db, "cancel_appointment", "Failed to cancel appointment"):
            current = await self._load_for_update(appointment_id)
            new_status = ensure_transition(current["status"], AppointmentAction.CANCEL)

            row = await self._apply(
                appointment_id,
                status=new_status.value,
                payment_status=PaymentStatus.CANCELLED.value,
                cancelled_at=datetime.now(UTC),
                notes=_append_note(current["notes"], f"Cancelled: {reason}"),
            )
            await self._record_transition(
                current, HistoryAction.CANCELLED, new_status, actor, reason
            )
            detail = await self._hydrate(row)

        logger.info("appointment_cancelled", appointment_id=str(appointment_id))
        return detail

    async def reschedule(
        self,
        appointment_id: UUID,
        new_date: date,
        new_time: time,
        actor: Actor | None = None,
    ) -> AppointmentDetailResponse:
        """
        Move an appointment to another slot of the same doctor.

        Args:
            appointment_id: Appointment ID
            new_date: Target date
            new_time: Target start time
            actor: Caller performing the move

        Returns:
            Updated appointment

        Raises:
            ConflictException: If the target slot is taken by another appointment
            InvalidStateException: If the appointment is already finished
        """
        async with unit_of_work(
            self.db, "reschedule_appointment", "Failed to reschedule appointment"
        ):
            current = await self._load_for_update(appointment_id)
            new_status = ensure_transition(current["status"], AppointmentAction.RESCHEDULE)

            if await self._has_conflict(
                current["doctor_id"], new_date, new_time, exclude_id=appointment_id
            ):
                raise ConflictException("The new time slot is already booked")

            end_time = add_minutes(new_time, current["duration_minutes"])
            row = await self._write_slot(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(
                    appointment_date=new_date,
                    start_time=new_time,
                    end_time=end_time,
                    status=new_status.value,
                    updated_at=datetime.now(UTC),
                )
            )
            await self._append_history(
                appointment_id,
                HistoryAction.RESCHEDULED,
                changed_by=actor.id if actor else None,
                changed_by_type=actor.kind if actor else None,
                previous_status=current["status"],
                new_status=new_status,
                previous_date=current["appointment_date"],
                new_date=new_date,
                previous_time=current["start_time"],
                new_time=new_time,
                change_reason=(
                    f"Rescheduled from {current['appointment_date']} "
                    f"{current['start_time'].strftime('%H:%M')} to "
                    f"{new_date} {new_time.strftime('%H:%M')}"
                ),
            )
            detail = await self._hydrate(row)

        logger.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            new_date=new_date.isoformat(),
            new_time=new_time.isoformat(),
        )
        return detail

    async def complete(
        self,
        appointment_id: UUID,
        notes: str | None = None,
        actor: Actor | None = None,
    ) -> AppointmentDetailResponse:
        """
        Finish a consultation, recording how long it actually took.

        The duration runs from when the consultation started, falling back
        to the check-in time and then to the scheduled start.

        Raises:
            InvalidStateException: If the appointment is not checked in or in progress
        """
        async with unit_of_work(self.db, "complete_appointment", "Failed to complete appointment"):
            current = await self._load_for_update(appointment_id)
            new_status = ensure_transition(current["status"], AppointmentAction.COMPLETE)

            now = datetime.now(UTC)
            reference = current["started_at"] or current["checked_in_at"]
            if reference is None:
                reference = datetime.combine(
                    current["appointment_date"], current["start_time"], tzinfo=UTC
                )
            elapsed = int((now - _as_utc(reference)).total_seconds() // 60)
            duration = elapsed if elapsed > 0 else current["duration_minutes"]

            start = current["start_time"]
            minutes_left = 24 * 60 - 1 - (start.hour * 60 + start.minute)
            duration = min(duration, max(minutes_left, 1))

            values: dict[str, Any] = {
                "status": new_status.value,
                "duration_minutes": duration,
                "end_time": add_minutes(start, duration),
                "completed_at": now,
            }
            if notes:
                values["notes"] = _append_note(current["notes"], notes)

            row = await self._apply(appointment_id, **values)
            await self._record_transition(
                current,
                HistoryAction.COMPLETED,
                new_status,
                actor,
                notes or "Consultation completed",
            )
            detail = await self._hydrate(row)

        logger.info(
            "appointment_completed",
            appointment_id=str(appointment_id),
            duration_minutes=duration,
        )
        return detail

    async def mark_no_show(
        self,
        appointment_id: UUID,
        actor: Actor | None = None,
    ) -> AppointmentDetailResponse:
        """
        Record that the patient did not arrive.

        Raises:
            InvalidStateException: If the appointment is not booked
        """
        async with unit_of_work(self.db, "mark_no_show", "Failed to mark appointment as no-show"):
            current = await self._load_for_update(appointment_id)
            new_status = ensure_transition(current["status"], AppointmentAction.MARK_NO_SHOW)

            row = await self._apply(appointment_id, status=new_status.value)
            await self._record_transition(
                current,
                HistoryAction.NO_SHOW,
                new_status,
                actor,
                "Patient did not arrive",
            )
            detail = await self._hydrate(row)

        logger.info("appointment_no_show", appointment_id=str(appointment_id))
        return detail

    async def record_payment(
        self,
        appointment_id: UUID,
        payment: PaymentCreate,
        actor: Actor | None = None,
    ) -> PaymentResponse:
        """
        Record a payment attempt against an appointment.

        Once completed payments cover the total amount the appointment is
        marked as paid.

        Raises:
            NotFoundException: If appointment not found
            InvalidStateException: If the appointment was cancelled
        """
        async with unit_of_work(self.db, "process_payment", "Process payment failed"):
            current = await self._load_for_update(appointment_id)
            if current["status"] == AppointmentStatus.CANCELLED.value:
                raise InvalidStateException("Cannot record a payment for a cancelled appointment")

            completed = payment.payment_status == PaymentRecordStatus.COMPLETED
            result = await self.db.execute(
                insert(appointment_payments)
                .values(
                    appointment_id=appointment_id,
                    amount=payment.amount,
                    payment_method=payment.payment_method.value,
                    transaction_reference=payment.transaction_reference,
                    payment_status=payment.payment_status.value,
                    paid_at=datetime.now(UTC) if completed else None,
                    processed_by=actor.id if actor else None,
                    notes=payment.notes,
                )
                .returning(appointment_payments)
            )
            payment_row = result.fetchone()

            paid_result = await self.db.execute(
                select(func.coalesce(func.sum(appointment_payments.c.amount), 0)).where(
                    and_(
                        appointment_payments.c.appointment_id == appointment_id,
                        appointment_payments.c.payment_status
                        == PaymentRecordStatus.COMPLETED.value,
                    )
                )
            )
            total_paid = Decimal(str(paid_result.scalar() or 0))

            if (
                total_paid >= Decimal(str(current["total_amount"]))
                and current["payment_status"] != PaymentStatus.PAID.value
            ):
                await self._apply(appointment_id, payment_status=PaymentStatus.PAID.value)

        logger.info(
            "appointment_payment_recorded",
            appointment_id=str(appointment_id),
            amount=str(payment.amount),
            total_paid=str(total_paid),
        )
        return PaymentResponse.model_validate(dict(payment_row._mapping))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _has_conflict(
        self,
        doctor_id: UUID,
        appointment_date: date,
        start_time: time,
        exclude_id: UUID | None = None,
    ) -> bool:
        """Check whether a live appointment already starts at this slot."""
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.appointment_date == appointment_date,
            appointments.c.start_time == start_time,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        result = await self.db.execute(
            select(appointments.c.id).where(and_(*conditions)).limit(1)
        )
        return result.first() is not None

    async def _write_slot(self, stmt) -> dict[str, Any]:
        """Execute an insert/update touching the slot columns."""
        try:
            result = await self.db.execute(stmt.returning(appointments))
        except IntegrityError as e:
            if _is_slot_violation(e):
                logger.warning("appointment_slot_taken", error=str(e.orig))
                raise ConflictException(SLOT_TAKEN_MESSAGE) from e
            raise
        return dict(result.fetchone()._mapping)

    async def _ensure_exists(self, appointment_id: UUID) -> None:
        result = await self.db.execute(
            select(appointments.c.id).where(appointments.c.id == appointment_id)
        )
        if result.first() is None:
            raise NotFoundException("Appointment not found")

    async def _load_for_update(self, appointment_id: UUID) -> dict[str, Any]:
        """Read an appointment, locking its row until the transaction ends."""
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id).with_for_update()
        )
        row = result.fetchone()

        if not row:
            raise NotFoundException("Appointment not found")

        return dict(row._mapping)

    async def _apply(self, appointment_id: UUID, **values: Any) -> dict[str, Any]:
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values, updated_at=datetime.now(UTC))
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        return dict(result.fetchone()._mapping)

    async def _record_transition(
        self,
        current: dict[str, Any],
        action: HistoryAction,
        new_status: AppointmentStatus,
        actor: Actor | None,
        reason: str,
    ) -> None:
        await self._append_history(
            current["id"],
            action,
            changed_by=actor.id if actor else None,
            changed_by_type=actor.kind if actor else None,
            previous_status=current["status"],
            new_status=new_status,
            change_reason=reason,
        )

    async def _append_history(
        self,
        appointment_id: UUID,
        action: HistoryAction,
        *,
        changed_by: UUID | None = None,
        changed_by_type: ActorKind | str | None = None,
        previous_status: AppointmentStatus | str | None = None,
        new_status: AppointmentStatus | str | None = None,
        previous_date: date | None = None,
        new_date: date | None = None,
        previous_time: time | None = None,
        new_time: time | None = None,
        change_reason: str | None = None,
    ) -> None:
        """Append one row to the appointment ledger. Rows are never updated."""
        await self.db.execute(
            insert(appointment_history).values(
                appointment_id=appointment_id,
                action_type=action.value,
                previous_status=AppointmentStatus(previous_status).value
                if previous_status
                else None,
                new_status=AppointmentStatus(new_status).value if new_status else None,
                previous_date=previous_date,
                new_date=new_date,
                previous_time=previous_time,
                new_time=new_time,
                changed_by=changed_by,
                changed_by_type=ActorKind(changed_by_type).value if changed_by_type else None,
                change_reason=change_reason,
                created_at=datetime.now(UTC),
            )
        )

    async def _history(
        self,
        appointment_id: UUID,
        limit: int | None = None,
    ) -> list[HistoryEntryResponse]:
        stmt = (
            select(appointment_history)
            .where(appointment_history.c.appointment_id == appointment_id)
            .order_by(appointment_history.c.created_at.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return [HistoryEntryResponse.model_validate(dict(row._mapping)) for row in result]

    async def _payments(self, appointment_id: UUID) -> list[PaymentResponse]:
        result = await self.db.execute(
            select(appointment_payments)
            .where(appointment_payments.c.appointment_id == appointment_id)
            .order_by(appointment_payments.c.created_at)
        )
        return [PaymentResponse.model_validate(dict(row._mapping)) for row in result]

    async def _patient_summary(self, patient_id: UUID) -> PatientSummary | None:
        stmt = (
            select(
                patients.c.id,
                patients.c.person_id,
                patients.c.mrn,
                persons.c.first_name,
                persons.c.middle_name,
                persons.c.last_name,
                persons.c.date_of_birth,
                persons.c.gender,
            )
            .select_from(patients.join(persons, patients.c.person_id == persons.c.id))
            .where(patients.c.id == patient_id)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return PatientSummary.model_validate(dict(row._mapping)) if row else None

    async def _hydrate(self, row: dict[str, Any]) -> AppointmentDetailResponse:
        """Attach patient, doctor, department, recent history and payments."""
        department = None
        if row["department_id"]:
            department = await self.directory.find_department(row["department_id"])

        return AppointmentDetailResponse(
            **AppointmentResponse.model_validate(row).model_dump(),
            patient=await self._patient_summary(row["patient_id"]),
            doctor=await self.directory.find_doctor(row["doctor_id"]),
            department=department,
            history=await self._history(row["id"], limit=settings.history_preview_limit),
            payments=await self._payments(row["id"]),
        )
