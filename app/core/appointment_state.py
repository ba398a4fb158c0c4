"""Appointment status state machine."""

from enum import Enum

from app.core.exceptions import InvalidStateException
from app.schemas.appointments import AppointmentStatus


class AppointmentAction(str, Enum):
    """Operations that act on an existing appointment."""

    CHECK_IN = "check_in"
    START_CONSULTATION = "start_consultation"
    EXTEND = "extend"
    RESCHEDULE = "reschedule"
    COMPLETE = "complete"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"


TERMINAL_STATUSES = frozenset(
    {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }
)

# A rescheduled appointment is bookable exactly like a scheduled one
_BOOKED = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.RESCHEDULED})
_ATTENDING = frozenset({AppointmentStatus.CHECKED_IN, AppointmentStatus.IN_PROGRESS})

ALLOWED_TRANSITIONS: dict[AppointmentAction, frozenset[AppointmentStatus]] = {
    AppointmentAction.CHECK_IN: _BOOKED,
    AppointmentAction.START_CONSULTATION: frozenset({AppointmentStatus.CHECKED_IN}),
    AppointmentAction.EXTEND: _ATTENDING,
    AppointmentAction.RESCHEDULE: _BOOKED | _ATTENDING,
    AppointmentAction.COMPLETE: _ATTENDING,
    AppointmentAction.CANCEL: _BOOKED | _ATTENDING,
    AppointmentAction.MARK_NO_SHOW: _BOOKED,
}

# None keeps the current status
RESULTING_STATUS: dict[AppointmentAction, AppointmentStatus | None] = {
    AppointmentAction.CHECK_IN: AppointmentStatus.CHECKED_IN,
    AppointmentAction.START_CONSULTATION: AppointmentStatus.IN_PROGRESS,
    AppointmentAction.EXTEND: None,
    AppointmentAction.RESCHEDULE: AppointmentStatus.RESCHEDULED,
    AppointmentAction.COMPLETE: AppointmentStatus.COMPLETED,
    AppointmentAction.CANCEL: AppointmentStatus.CANCELLED,
    AppointmentAction.MARK_NO_SHOW: AppointmentStatus.NO_SHOW,
}

_REJECTION_MESSAGES: dict[AppointmentAction, str] = {
    AppointmentAction.CHECK_IN: "Only scheduled appointments can be checked in",
    AppointmentAction.START_CONSULTATION: (
        "Cannot start consultation. Patient must be checked in first"
    ),
    AppointmentAction.EXTEND: "Only in-progress or checked-in appointments can be extended",
    AppointmentAction.RESCHEDULE: "This appointment cannot be rescheduled",
    AppointmentAction.COMPLETE: "Only checked-in or in-progress appointments can be completed",
    AppointmentAction.CANCEL: "This appointment cannot be cancelled",
    AppointmentAction.MARK_NO_SHOW: "Only scheduled appointments can be marked as no-show",
}


def can_perform(status: AppointmentStatus | str, action: AppointmentAction) -> bool:
    """Check whether ``action`` is legal from ``status``."""
    return AppointmentStatus(status) in ALLOWED_TRANSITIONS[action]


def ensure_transition(
    status: AppointmentStatus | str,
    action: AppointmentAction,
) -> AppointmentStatus:
    """
    Validate a transition and return the status it leads to.

    Args:
        status: Current appointment status
        action: Requested operation

    Returns:
        Status after the operation

    Raises:
        InvalidStateException: If the action is not legal from ``status``
    """
    current = AppointmentStatus(status)
    if current not in ALLOWED_TRANSITIONS[action]:
        raise InvalidStateException(
            f"{_REJECTION_MESSAGES[action]} (current status: {current.value})"
        )
    return RESULTING_STATUS[action] or current


def is_terminal(status: AppointmentStatus | str) -> bool:
    """Check whether no further transitions are possible."""
    return AppointmentStatus(status) in TERMINAL_STATUSES
