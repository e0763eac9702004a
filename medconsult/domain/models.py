"""
Domain models for doctors, working-hours templates and consultations.

All value types are immutable and validate their invariants on construction,
so anything that reaches the scheduler has already been checked.
"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pendulum import DateTime

MIN_CONSULTATION_MINUTES = 15
MAX_CONSULTATION_MINUTES = 120
MAX_BIO_LENGTH = 1000


class Weekday(IntEnum):
    """Day of the week, numbered like ``datetime.weekday()`` (0=Monday)."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, dt: date) -> "Weekday":
        """Return the weekday a date or datetime falls on."""
        return cls(dt.weekday())

    @classmethod
    def from_name(cls, name: str) -> "Weekday":
        """Parse a weekday name such as ``monday`` (case-insensitive)."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown weekday: '{name}'") from None

    @property
    def is_weekend(self) -> bool:
        return self >= Weekday.SATURDAY


def parse_clock_time(value: str) -> time:
    """
    Parse an ``HH:MM`` string into a time.

    Raises:
        ValueError: If the string is not a valid 24h clock time
    """
    try:
        hour_str, minute_str = value.strip().split(":")
        return time(hour=int(hour_str), minute=int(minute_str))
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time '{value}', expected HH:MM") from None


@dataclass(frozen=True)
class DayHours:
    """
    Working window for one weekday.

    Invariant: when working, start may not be after end (no overnight spans).
    A missing start or end means the day contributes no slots.
    """
    start: Optional[time] = None
    end: Optional[time] = None
    is_working: bool = True

    def __post_init__(self):
        if self.is_working and self.start and self.end and self.start > self.end:
            raise ValueError(
                f"Working hours start {self.start:%H:%M} must not be after end {self.end:%H:%M}"
            )

    @property
    def has_window(self) -> bool:
        """True if this day can produce slots at all."""
        return self.is_working and self.start is not None and self.end is not None


@dataclass(frozen=True)
class WorkingHoursTemplate:
    """
    Recurring weekly working hours, one ``DayHours`` per weekday.

    Days not present in the mapping fall back to the default: Monday to Friday
    flagged as working, weekends off, and no hours set either way.
    """
    days: Mapping[Weekday, DayHours] = field(default_factory=dict)

    def __post_init__(self):
        normalized = {Weekday(day): hours for day, hours in self.days.items()}
        object.__setattr__(self, "days", MappingProxyType(normalized))

    def for_day(self, weekday: Weekday) -> DayHours:
        """Return the template entry for a weekday."""
        hours = self.days.get(weekday)
        if hours is None:
            return DayHours(is_working=not weekday.is_weekend)
        return hours

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping]) -> "WorkingHoursTemplate":
        """
        Build a template from ``{"monday": {"start": "09:00", "end": "17:00", "isWorking": true}}``.
        """
        days = {}
        for name, entry in raw.items():
            weekday = Weekday.from_name(name)
            start = entry.get("start")
            end = entry.get("end")
            is_working = entry.get("isWorking", entry.get("is_working"))
            if is_working is None:
                is_working = not weekday.is_weekend
            days[weekday] = DayHours(
                start=parse_clock_time(start) if start else None,
                end=parse_clock_time(end) if end else None,
                is_working=bool(is_working),
            )
        return cls(days=days)


@dataclass(frozen=True)
class Location:
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match against city or state."""
        needle = term.lower()
        return any(
            value and needle in value.lower()
            for value in (self.city, self.state)
        )


@dataclass(frozen=True)
class Doctor:
    """
    Read-only view of a doctor profile.

    Only doctors that are both active and verified can be discovered or booked.
    """
    id: str
    name: str
    specialization: str
    consultation_fee: float
    working_hours: WorkingHoursTemplate = field(default_factory=WorkingHoursTemplate)
    consultation_duration: int = 30
    rating: float = 0.0
    review_count: int = 0
    experience: int = 0
    email: str = ""
    location: Location = field(default_factory=Location)
    qualifications: Tuple[str, ...] = ()
    languages: Tuple[str, ...] = ()
    bio: str = ""
    profile_image: Optional[str] = None
    is_active: bool = True
    is_verified: bool = False
    is_online: bool = False

    def __post_init__(self):
        if not self.id:
            raise ValueError("Doctor id must not be empty")
        if self.consultation_fee < 0:
            raise ValueError(f"Consultation fee must be non-negative, got {self.consultation_fee}")
        if not 0 <= self.rating <= 5:
            raise ValueError(f"Rating must be between 0 and 5, got {self.rating}")
        if self.review_count < 0:
            raise ValueError(f"Review count must be non-negative, got {self.review_count}")
        if self.experience < 0:
            raise ValueError(f"Experience must be non-negative, got {self.experience}")
        if not MIN_CONSULTATION_MINUTES <= self.consultation_duration <= MAX_CONSULTATION_MINUTES:
            raise ValueError(
                f"Consultation duration must be between {MIN_CONSULTATION_MINUTES} and "
                f"{MAX_CONSULTATION_MINUTES} minutes, got {self.consultation_duration}"
            )
        if len(self.bio) > MAX_BIO_LENGTH:
            raise ValueError(f"Bio must be at most {MAX_BIO_LENGTH} characters")

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.is_verified


@dataclass(frozen=True)
class Patient:
    id: str
    name: str
    email: str = ""
    phone: str = ""
    age: Optional[int] = None
    gender: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        if not self.id:
            raise ValueError("Patient id must not be empty")
        if self.age is not None and not 0 <= self.age <= 150:
            raise ValueError(f"Age must be between 0 and 150, got {self.age}")
        if self.gender is not None and self.gender not in ("Male", "Female", "Other"):
            raise ValueError(f"Gender must be Male, Female or Other, got {self.gender}")


class ConsultationType(str, Enum):
    VIDEO = "video"
    VOICE = "voice"
    CHAT = "chat"

    def __str__(self) -> str:
        return self.value


class ConsultationStatus(str, Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED)


@dataclass(frozen=True)
class Medication:
    name: str
    dosage: str
    frequency: str
    duration: str
    instructions: str = ""


@dataclass(frozen=True)
class Prescription:
    medications: Tuple[Medication, ...] = ()
    instructions: str = ""
    follow_up_date: Optional[date] = None


# Clinical records may only be attached once the consultation has started.
# A cancelled consultation keeps whatever was recorded before it was cancelled.
CLINICAL_RECORD_STATUSES = (ConsultationStatus.ONGOING, ConsultationStatus.COMPLETED)


@dataclass(frozen=True)
class Consultation:
    """
    A reserved consultation.

    Fee, duration and the doctor's name and specialization are copied from the
    doctor profile when the booking is made and never change afterwards.
    """
    id: str
    doctor_id: str
    patient_id: str
    type: ConsultationType
    scheduled_at: DateTime
    duration: int
    fee: float
    status: ConsultationStatus = ConsultationStatus.SCHEDULED
    symptoms: str = ""
    doctor_name: str = ""
    specialization: str = ""
    created_at: Optional[DateTime] = None
    consultation_notes: Optional[str] = None
    prescription: Optional[Prescription] = None
    cancellation_reason: Optional[str] = None

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")
        if self.fee < 0:
            raise ValueError(f"Fee must be non-negative, got {self.fee}")
        has_record = self.consultation_notes is not None or self.prescription is not None
        if has_record and self.status == ConsultationStatus.SCHEDULED:
            raise ValueError(
                f"Notes and prescriptions cannot be attached to a {self.status} consultation"
            )

    @property
    def is_active(self) -> bool:
        """A consultation holds its slot unless it was cancelled."""
        return self.status != ConsultationStatus.CANCELLED

    @property
    def ends_at(self) -> DateTime:
        return self.scheduled_at.add(minutes=self.duration)


@dataclass(frozen=True)
class DoctorFilters:
    """
    Optional, conjunctive directory filters.

    Eligibility (active and verified) is always enforced on top of these.
    """
    text_search: Optional[str] = None
    specialization: Optional[str] = None
    min_rating: Optional[float] = None
    max_fee: Optional[float] = None
    location: Optional[str] = None
    is_online: Optional[bool] = None

    def matches(self, doctor: Doctor) -> bool:
        if not doctor.is_bookable:
            return False
        if self.text_search:
            needle = self.text_search.lower()
            if needle not in doctor.name.lower() and needle not in doctor.specialization.lower():
                return False
        if self.specialization is not None and doctor.specialization != self.specialization:
            return False
        if self.min_rating is not None and doctor.rating < self.min_rating:
            return False
        if self.max_fee is not None and doctor.consultation_fee > self.max_fee:
            return False
        if self.location and not doctor.location.matches(self.location):
            return False
        if self.is_online is not None and doctor.is_online != self.is_online:
            return False
        return True


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 10

    def __post_init__(self):
        if self.page < 1:
            raise ValueError(f"Page must be at least 1, got {self.page}")
        if self.limit < 1:
            raise ValueError(f"Limit must be at least 1, got {self.limit}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return -(-total // self.limit)


@dataclass(frozen=True)
class DirectoryEntry:
    """A doctor together with a preview of their next open slots."""
    doctor: Doctor
    available_slots: Tuple[DateTime, ...] = ()


@dataclass(frozen=True)
class DirectoryPage:
    items: Tuple[DirectoryEntry, ...]
    total: int
    total_pages: int
    page: int
    limit: int
