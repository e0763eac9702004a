"""
Domain-specific exception hierarchy for the consultation scheduler.
"""


class SchedulerError(Exception):
    """Base class for all application-level errors."""


class NotFoundError(SchedulerError):
    """Raised when a doctor, patient or consultation is absent or inactive."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class BookingError(SchedulerError):
    """Base class for user-correctable booking failures."""

    def __init__(self, message: str, doctor_id: str, slot):
        self.doctor_id = doctor_id
        self.slot = slot
        super().__init__(message)


class InvalidSlotError(BookingError):
    """Raised when a requested time is not a slot the doctor offers."""

    def __init__(self, doctor_id: str, slot, reason: str = "not an available slot"):
        self.reason = reason
        super().__init__(
            f"Invalid slot {slot} for doctor {doctor_id}: {reason}",
            doctor_id,
            slot,
        )


class SlotAlreadyBookedError(BookingError):
    """Raised when another active consultation already holds the slot."""

    def __init__(self, doctor_id: str, slot):
        super().__init__(
            f"Slot {slot} for doctor {doctor_id} is already booked",
            doctor_id,
            slot,
        )


class InvalidTransitionError(SchedulerError):
    """Raised when a consultation status change is not allowed."""

    def __init__(self, current, requested, detail: str | None = None):
        self.current = current
        self.requested = requested
        message = f"Cannot transition consultation from '{current}' to '{requested}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class EarlyStartError(InvalidTransitionError):
    """Raised when a scheduled consultation is started before its slot."""


class NoDoctorAvailableError(SchedulerError):
    """Raised when no online doctor qualifies for an instant consultation."""


class ConflictError(SchedulerError):
    """Raised by a consultation store when the conflict rule would be broken."""

    def __init__(self, doctor_id: str, slot):
        self.doctor_id = doctor_id
        self.slot = slot
        super().__init__(f"Active consultation already exists for {doctor_id} at {slot}")


class StoreUnavailableError(SchedulerError):
    """Raised when a backing store cannot be reached."""


class DirectoryUnavailableError(StoreUnavailableError):
    """Raised when the doctor directory cannot be queried."""

    def __init__(self, message: str = "Doctor directory unavailable"):
        super().__init__(message)
