"""Doctor and department availability endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentActor, DatabaseSession
from app.schemas.availability import (
    DepartmentAvailabilityResponse,
    DoctorAvailabilityResponse,
)
from app.services.availability_service import AvailabilityService

router = APIRouter()


@router.get(
    "/doctors/{doctor_id}/availability",
    response_model=DoctorAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get doctor availability",
)
async def get_doctor_availability(
    doctor_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
) -> DoctorAvailabilityResponse:
    """
    List free slots of a doctor.

    Args:
        doctor_id: Doctor staff ID
        actor: Authenticated caller
        db: Database session
        start_date: First day, defaults to today
        end_date: Last day, defaults to three months after start_date

    Returns:
        Free slots, flat and grouped per day
    """
    service = AvailabilityService(db)
    return await service.get_doctor_availability(doctor_id, start_date, end_date)


@router.get(
    "/departments/{department_id}/availability",
    response_model=DepartmentAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get department availability",
)
async def get_department_availability(
    department_id: UUID,
    actor: CurrentActor,
    db: DatabaseSession,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
) -> DepartmentAvailabilityResponse:
    """List free slots of every active doctor in a department."""
    service = AvailabilityService(db)
    return await service.get_department_availability(department_id, start_date, end_date)
