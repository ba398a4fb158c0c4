"""Database models."""

from app.models.appointments import (
    appointment_history,
    appointment_payments,
    appointments,
)
from app.models.base import metadata
from app.models.patients import patients
from app.models.persons import persons
from app.models.pricing import appointment_pricing
from app.models.schedules import doctor_leaves, doctor_schedules
from app.models.sequences import id_sequences
from app.models.staff import departments, staff

__all__ = [
    "appointment_history",
    "appointment_payments",
    "appointment_pricing",
    "appointments",
    "departments",
    "doctor_leaves",
    "doctor_schedules",
    "id_sequences",
    "metadata",
    "patients",
    "persons",
    "staff",
]
