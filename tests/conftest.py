"""
Shared fixtures: a fixed clock, in-memory stores and wired-up services.
"""

from datetime import time

import pendulum
import pytest

from medconsult.adapters.clock import FixedClock
from medconsult.adapters.memory_store import (
    InMemoryConsultationStore,
    InMemoryDoctorStore,
    InMemoryPatientStore,
)
from medconsult.domain.models import DayHours, Doctor, Location, Patient, Weekday, WorkingHoursTemplate
from medconsult.domain.slot_generator import SlotGenerator
from medconsult.services.booking_scheduler import BookingScheduler
from medconsult.services.doctor_directory import DoctorDirectory

TZ = "Europe/Berlin"

# Sunday noon, the day before the Monday most tests book on.
NOW = pendulum.datetime(2024, 11, 24, 12, 0, tz=TZ)


def weekday_template(start: time = time(9, 0), end: time = time(11, 0)) -> WorkingHoursTemplate:
    """Monday to Friday with the same hours, weekends off."""
    days = {
        day: DayHours(start=start, end=end, is_working=True)
        for day in Weekday
        if not day.is_weekend
    }
    return WorkingHoursTemplate(days=days)


def make_doctor(doctor_id: str = "d1", **overrides) -> Doctor:
    values = dict(
        id=doctor_id,
        name=f"Dr. {doctor_id.upper()}",
        specialization="General Medicine",
        consultation_fee=50.0,
        working_hours=weekday_template(),
        consultation_duration=30,
        rating=4.5,
        review_count=10,
        location=Location(city="Berlin", state="Berlin", country="Germany"),
        is_active=True,
        is_verified=True,
        is_online=False,
    )
    values.update(overrides)
    return Doctor(**values)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def generator():
    return SlotGenerator(timezone=TZ)


@pytest.fixture
def doctor_store():
    return InMemoryDoctorStore([make_doctor("d1")])


@pytest.fixture
def patient_store():
    return InMemoryPatientStore([Patient(id="p1", name="Jane Doe")])


@pytest.fixture
def consultation_store():
    return InMemoryConsultationStore()


@pytest.fixture
def directory(doctor_store, generator, clock):
    return DoctorDirectory(doctor_store, generator, clock)


@pytest.fixture
def scheduler(doctor_store, patient_store, consultation_store, generator, clock):
    return BookingScheduler(
        doctor_store,
        patient_store,
        consultation_store,
        generator,
        clock,
    )
