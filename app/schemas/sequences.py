"""Identifier sequence schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SequenceType(str, Enum):
    """Identifier categories issued by the sequence generator."""

    APPOINTMENT = "appointment"
    ADMISSION = "admission"
    LAB_ORDER = "lab_order"
    MRN = "mrn"
    TEMP_MRN = "temp_mrn"
    ER_VISIT = "er_visit"
    PRESCRIPTION = "prescription"
    INVOICE = "invoice"


class ResetPolicy(str, Enum):
    """When a sequence restarts from zero."""

    YEARLY = "yearly"
    DAILY = "daily"
    NEVER = "never"


class SequenceIdResponse(BaseModel):
    """A freshly issued identifier."""

    sequence_type: SequenceType
    value: str


class SequenceStateResponse(BaseModel):
    """Current counter state of a sequence."""

    sequence_type: SequenceType
    prefix: str
    padding_length: int
    current_value: int
    reset_policy: ResetPolicy
    epoch_key: str
    last_updated: datetime | None = None

    model_config = {"from_attributes": True}
