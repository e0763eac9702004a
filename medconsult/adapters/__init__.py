"""
Adapters layer - Store, clock and record implementations.
"""

from .clock import FixedClock, SystemClock
from .json_store import JsonConsultationStore
from .memory_store import InMemoryConsultationStore, InMemoryDoctorStore, InMemoryPatientStore
from .records import ConsultationRecord, DoctorRecord, PatientRecord, load_seed_data

__all__ = [
    "ConsultationRecord",
    "DoctorRecord",
    "FixedClock",
    "InMemoryConsultationStore",
    "InMemoryDoctorStore",
    "InMemoryPatientStore",
    "JsonConsultationStore",
    "PatientRecord",
    "SystemClock",
    "load_seed_data",
]
