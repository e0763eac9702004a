"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    ConflictError,
    DirectoryUnavailableError,
    EarlyStartError,
    InvalidSlotError,
    InvalidTransitionError,
    NoDoctorAvailableError,
    NotFoundError,
    SchedulerError,
    SlotAlreadyBookedError,
    StoreUnavailableError,
)
from .models import (
    Consultation,
    ConsultationStatus,
    ConsultationType,
    DayHours,
    DirectoryEntry,
    DirectoryPage,
    Doctor,
    DoctorFilters,
    Location,
    Medication,
    Pagination,
    Patient,
    Prescription,
    Weekday,
    WorkingHoursTemplate,
)
from .slot_generator import SlotGenerator
from .state_machine import ALLOWED_TRANSITIONS, can_transition, ensure_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ConflictError",
    "Consultation",
    "ConsultationStatus",
    "ConsultationType",
    "DayHours",
    "DirectoryEntry",
    "DirectoryPage",
    "DirectoryUnavailableError",
    "Doctor",
    "DoctorFilters",
    "EarlyStartError",
    "InvalidSlotError",
    "InvalidTransitionError",
    "Location",
    "Medication",
    "NoDoctorAvailableError",
    "NotFoundError",
    "Pagination",
    "Patient",
    "Prescription",
    "SchedulerError",
    "SlotAlreadyBookedError",
    "SlotGenerator",
    "StoreUnavailableError",
    "Weekday",
    "WorkingHoursTemplate",
    "can_transition",
    "ensure_transition",
]
