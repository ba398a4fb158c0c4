"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, model_validator

from app.config import settings
from app.schemas.auth import ActorKind


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentType(str, Enum):
    """Appointment type enumeration."""

    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"
    PROCEDURE = "procedure"
    TELEMEDICINE = "telemedicine"


class AppointmentPriority(str, Enum):
    """Appointment priority enumeration."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class PaymentStatus(str, Enum):
    """Payment state of an appointment as a whole."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Accepted payment methods."""

    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    GCASH = "gcash"
    PAYMAYA = "paymaya"
    BANK_TRANSFER = "bank_transfer"
    INSURANCE = "insurance"


class PaymentRecordStatus(str, Enum):
    """State of a single payment attempt."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class HistoryAction(str, Enum):
    """Action recorded in the appointment history ledger."""

    CREATED = "created"
    CHECKED_IN = "checked_in"
    STARTED = "started"
    EXTENDED = "extended"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


APPOINTMENT_TYPE_DESCRIPTIONS: dict[AppointmentType, tuple[str, str]] = {
    AppointmentType.CONSULTATION: ("General Consultation", "Regular check-up or consultation"),
    AppointmentType.FOLLOW_UP: ("Follow-up Visit", "Follow-up from previous appointment"),
    AppointmentType.PROCEDURE: ("Medical Procedure", "Scheduled medical procedure"),
    AppointmentType.TELEMEDICINE: ("Telemedicine", "Online video consultation"),
}


# ============================================================================
# Requests
# ============================================================================


class AppointmentBookingRequest(BaseModel):
    """
    Schema for booking a new appointment.

    Required fields are optional at the schema level so that the booking
    engine can report every missing one at once.
    """

    person_id: UUID | None = None
    department_id: UUID | None = None
    doctor_id: UUID | None = None
    appointment_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    duration_minutes: int = Field(
        default_factory=lambda: settings.default_appointment_minutes, ge=1, le=480
    )
    appointment_type: AppointmentType = AppointmentType.CONSULTATION
    reason: str | None = Field(None, max_length=500)
    priority: AppointmentPriority = AppointmentPriority.NORMAL
    created_by: UUID | None = None
    created_by_type: ActorKind | None = None


class AppointmentExtendRequest(BaseModel):
    """Schema for extending an appointment in progress."""

    additional_minutes: int = Field(..., gt=0, le=480)


class AppointmentCancelRequest(BaseModel):
    """Schema for cancelling an appointment."""

    reason: str = Field(..., min_length=1, max_length=1000)


class AppointmentRescheduleRequest(BaseModel):
    """Schema for moving an appointment to a new slot."""

    new_date: date
    new_time: time


class AppointmentCompleteRequest(BaseModel):
    """Schema for completing a consultation."""

    notes: str | None = Field(None, max_length=2000)


class PaymentCreate(BaseModel):
    """Schema for recording a payment attempt."""

    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_method: PaymentMethod
    transaction_reference: str | None = Field(None, max_length=100)
    payment_status: PaymentRecordStatus = PaymentRecordStatus.COMPLETED
    notes: str | None = Field(None, max_length=1000)


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    doctor_id: UUID | None = None
    patient_id: UUID | None = None
    status: AppointmentStatus | None = None
    appointment_type: AppointmentType | None = None
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)

    @model_validator(mode="after")
    def validate_date_range(self) -> "AppointmentFilters":
        """Validate from_date is not after to_date."""
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError("from_date must not be after to_date")
        return self


# ============================================================================
# Responses
# ============================================================================


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    appointment_number: str
    patient_id: UUID
    doctor_id: UUID
    department_id: UUID | None
    appointment_type: AppointmentType
    appointment_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    time_extended_minutes: int
    status: AppointmentStatus
    priority: AppointmentPriority
    reason: str
    notes: str | None = None
    consultation_fee: Decimal
    extension_fee: Decimal
    total_amount: Decimal
    payment_status: PaymentStatus
    created_by: UUID | None = None
    created_by_type: ActorKind
    checked_in_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", "extension_fee", "total_amount", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class HistoryEntryResponse(BaseModel):
    """One immutable row of the appointment ledger."""

    id: UUID
    appointment_id: UUID
    action_type: HistoryAction
    previous_status: AppointmentStatus | None = None
    new_status: AppointmentStatus | None = None
    previous_date: date | None = None
    new_date: date | None = None
    previous_time: time | None = None
    new_time: time | None = None
    changed_by: UUID | None = None
    changed_by_type: ActorKind | None = None
    change_reason: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    id: UUID
    appointment_id: UUID
    amount: Decimal
    payment_method: PaymentMethod
    transaction_reference: str | None = None
    payment_status: PaymentRecordStatus
    paid_at: datetime | None = None
    processed_by: UUID | None = None
    notes: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("amount", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class PatientSummary(BaseModel):
    """Patient block embedded in appointment details."""

    id: UUID
    person_id: UUID
    mrn: str
    first_name: str
    middle_name: str | None = None
    last_name: str
    date_of_birth: date | None = None
    gender: str | None = None


class DoctorSummary(BaseModel):
    """Doctor block embedded in appointment and availability responses."""

    id: UUID
    name: str
    specialization: str | None = None
    department_id: UUID | None = None


class DepartmentSummary(BaseModel):
    """Department block embedded in appointment details."""

    id: UUID
    name: str
    code: str | None = None
    location: str | None = None


class AppointmentDetailResponse(AppointmentResponse):
    """Appointment with patient, doctor, department, recent history and payments."""

    patient: PatientSummary | None = None
    doctor: DoctorSummary | None = None
    department: DepartmentSummary | None = None
    history: list[HistoryEntryResponse] = Field(default_factory=list)
    payments: list[PaymentResponse] = Field(default_factory=list)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentTypeOption(BaseModel):
    """Bookable appointment type."""

    value: AppointmentType
    label: str
    description: str
