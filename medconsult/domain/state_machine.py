"""
Consultation status transitions.

    scheduled -> ongoing -> completed
    scheduled -> cancelled
    ongoing   -> cancelled

``completed`` and ``cancelled`` are terminal.
"""

from typing import Dict, FrozenSet

from .exceptions import InvalidTransitionError
from .models import ConsultationStatus

ALLOWED_TRANSITIONS: Dict[ConsultationStatus, FrozenSet[ConsultationStatus]] = {
    ConsultationStatus.SCHEDULED: frozenset(
        {ConsultationStatus.ONGOING, ConsultationStatus.CANCELLED}
    ),
    ConsultationStatus.ONGOING: frozenset(
        {ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED}
    ),
    ConsultationStatus.COMPLETED: frozenset(),
    ConsultationStatus.CANCELLED: frozenset(),
}


def can_transition(current: ConsultationStatus, requested: ConsultationStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: ConsultationStatus, requested: ConsultationStatus) -> None:
    """
    Raise ``InvalidTransitionError`` unless ``current -> requested`` is allowed.
    """
    if not can_transition(current, requested):
        detail = "status is terminal" if current.is_terminal else None
        raise InvalidTransitionError(current, requested, detail)
