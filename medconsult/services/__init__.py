"""
Service layer helpers that orchestrate stores and domain logic.
"""

from .booking_scheduler import (
    BookingScheduler,
    ConsultationStore,
    DoctorMatchPolicy,
    HighestRatedPolicy,
    PatientStore,
)
from .doctor_directory import Clock, DoctorDirectory, DoctorStore

__all__ = [
    "BookingScheduler",
    "Clock",
    "ConsultationStore",
    "DoctorDirectory",
    "DoctorMatchPolicy",
    "DoctorStore",
    "HighestRatedPolicy",
    "PatientStore",
]
