"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import Cache, CurrentActor, DatabaseSession
from app.schemas.appointments import (
    AppointmentBookingRequest,
    AppointmentCancelRequest,
    AppointmentCompleteRequest,
    AppointmentDetailResponse,
    AppointmentExtendRequest,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentRescheduleRequest,
    AppointmentStatus,
    AppointmentType,
    AppointmentTypeOption,
    HistoryEntryResponse,
    PaymentCreate,
    PaymentResponse,
)
from app.schemas.pricing import FeeBreakdown
from app.services.appointment_service import AppointmentService
from app.services.pricing_service import PricingService

router = APIRouter()


@router.post(
    "/book",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def book_appointment(
    data: AppointmentBookingRequest,
    actor: CurrentActor,
    db: DatabaseSession,
    cache: Cache,
) -> AppointmentDetailResponse:
    """
    Book an appointment, registering the patient on their first visit.

    Args:
        data: Booking request
        actor: Authenticated staff member or user
        db: Database session
        cache: Pricing cache

    Returns:
        Booked appointment with related records
    """
    service = AppointmentService(db, cache)
    return await service.book_appointment(data, actor)


@router.get(
    "",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    actor: CurrentActor,
    db: DatabaseSession,
    doctor_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    appointment_type: AppointmentType | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments with filtering, ordered by date and start time.

    Args:
        actor: Authenticated caller
        db: Database session
        doctor_id: Filter by doctor
        patient_id: Filter by patient
        status_filter: Filter by status
        appointment_type: Filter by type
        from_date: First appointment date to include
        to_date: Last appointment date to include
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        doctor_id=doctor_id,
        patient_id=patient_id,
        status=status_filter,
        appointment_type=appointment_type,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    service = AppointmentService(db)
    return await service.list_appointments(filters)


@router.get(
    "/types",
    response_model=list[AppointmentTypeOption],
    status_code=status.HTTP_200_OK,
    summary="List appointment types",
)
async def get_appointment_types() -> list[AppointmentTypeOption]:
    """List the appointment types that can be booked."""
    return AppointmentService.get_appointment_types()


@router.get(
    "/calculate-fee",
    response_model=FeeBreakdown,
    status_code=status.HTTP_200_OK,
    summary="Calculate appointment fee",
)
async def calculate_fee(
    actor: CurrentActor,
    db: DatabaseSession,
    cache: Cache,
    doctor_id: UUID = Query(...),
    department_id: UUID | None = Query(None),
    appointment_type: AppointmentType = Query(AppointmentType.CONSULTATION),
    duration_minutes: int = Query(30, ge=1, le=480),
) -> FeeBreakdown:
    """
    Quote the fee of a prospective booking.

    Returns:
        Base fee, extension fee and total
    """
    service = PricingService(db, cache)
    return await service.calculate_fee(
        doctor_id, department_id, appointment_type, duration_minutes
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentDetailResponse:
    """Get an appointment with patient, doctor, department, recent history and payments."""
    service = AppointmentService(db)
    return await service.get_appointment(appointment_id)


@router.get(
    "/{appointment_id}/history",
    response_model=list[HistoryEntryResponse],
    status_code=status.HTTP_200_OK,
    summary="Get appointment history",
)
async def get_appointment_history(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> list[HistoryEntryResponse]:
    """Get every recorded change of an appointment, newest first."""
    service = AppointmentService(db)
    return await service.get_history(appointment_id)


@router.get(
    "/{appointment_id}/payments",
    response_model=list[PaymentResponse],
    status_code=status.HTTP_200_OK,
    summary="Get appointment payments",
)
async def get_appointment_payments(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> list[PaymentResponse]:
    """Get the payment attempts recorded for an appointment."""
    service = AppointmentService(db)
    return await service.get_payments(appointment_id)


@router.post(
    "/{appointment_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a payment",
)
async def record_payment(
    appointment_id: UUID,
    data: PaymentCreate,
    actor: CurrentActor,
    db: DatabaseSession,
) -> PaymentResponse:
    """
    Record a payment against an appointment.

    Args:
        appointment_id: Appointment ID
        data: Payment details
        actor: Staff member processing the payment
        db: Database session

    Returns:
        Recorded payment
    """
    service = AppointmentService(db)
    return await service.record_payment(appointment_id, data, actor)


@router.patch(
    "/{appointment_id}/check-in",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Check in patient",
)
async def check_in_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentDetailResponse:
    """Mark the patient of a booked appointment as arrived."""
    service = AppointmentService(db)
    return await service.check_in(appointment_id, actor)


@router.patch(
    "/{appointment_id}/start",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Start consultation",
)
async def start_consultation(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentDetailResponse:
    """Start the consultation of a checked-in patient."""
    service = AppointmentService(db)
    return await service.start_consultation(appointment_id, actor)


@router.patch(
    "/{appointment_id}/extend",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Extend appointment",
)
async def extend_appointment(
    appointment_id: UUID,
    data: AppointmentExtendRequest,
    actor: CurrentActor,
    db: DatabaseSession,
    cache: Cache,
) -> AppointmentDetailResponse:
    """Lengthen an ongoing appointment; the fee is recalculated."""
    service = AppointmentService(db, cache)
    return await service.extend(appointment_id, data.additional_minutes, actor)


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    data: AppointmentCancelRequest,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentDetailResponse:
    """Cancel an appointment and release its slot."""
    service = AppointmentService(db)
    return await service.cancel(appointment_id, data.reason, actor)


@router.patch(
    "/{appointment_id}/reschedule",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentRescheduleRequest,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentDetailResponse:
    """Move an appointment to another free slot of the same doctor."""
    service = AppointmentService(db)
    return await service.reschedule(appointment_id, data.new_date, data.new_time, actor)


@router.patch(
    "/{appointment_id}/complete",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete consultation",
)
async def complete_appointment(
    appointment_id: UUID,
    data: AppointmentCompleteRequest,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentDetailResponse:
    """Finish a consultation, recording its actual duration."""
    service = AppointmentService(db)
    return await service.complete(appointment_id, data.notes, actor)


@router.patch(
    "/{appointment_id}/no-show",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark as no-show",
)
async def mark_no_show(
    appointment_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentDetailResponse:
    """Record that the patient did not arrive."""
    service = AppointmentService(db)
    return await service.mark_no_show(appointment_id, actor)
