"""
Record schemas for raw doctor, patient and consultation documents.

Raw documents use the camelCase keys of the profile service
(``consultationFee``, ``workingHours``, ``isWorking`` ...). The schemas
validate them with pydantic and convert them into the immutable domain types.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pendulum
import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain.models import (
    MAX_BIO_LENGTH,
    MAX_CONSULTATION_MINUTES,
    MIN_CONSULTATION_MINUTES,
    Consultation,
    ConsultationStatus,
    ConsultationType,
    Doctor,
    Location,
    Medication,
    Patient,
    Prescription,
    Weekday,
    WorkingHoursTemplate,
    parse_clock_time,
)


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class RecordModel(BaseModel):
    model_config = ConfigDict(alias_generator=_to_camel, populate_by_name=True)


class DayHoursRecord(RecordModel):
    start: Optional[str] = None
    end: Optional[str] = None
    is_working: Optional[bool] = None

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: Optional[str]) -> Optional[str]:
        if value:
            parse_clock_time(value)
        return value or None


class LocationRecord(RecordModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class DoctorRecord(RecordModel):
    """A doctor profile document."""
    id: str
    name: str
    specialization: str
    consultation_fee: float = Field(ge=0)
    experience: int = Field(default=0, ge=0)
    rating: float = Field(default=0.0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    email: str = ""
    profile_image: Optional[str] = None
    qualifications: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    bio: str = Field(default="", max_length=MAX_BIO_LENGTH)
    is_online: bool = False
    is_verified: bool = False
    is_active: bool = True
    location: LocationRecord = Field(default_factory=LocationRecord)
    working_hours: Dict[str, DayHoursRecord] = Field(default_factory=dict)
    consultation_duration: int = Field(
        default=30, ge=MIN_CONSULTATION_MINUTES, le=MAX_CONSULTATION_MINUTES
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("working_hours")
    @classmethod
    def validate_weekdays(cls, value: Dict[str, DayHoursRecord]) -> Dict[str, DayHoursRecord]:
        for name in value:
            Weekday.from_name(name)
        return value

    def to_domain(self) -> Doctor:
        template = WorkingHoursTemplate.from_mapping(
            {name: entry.model_dump(by_alias=True) for name, entry in self.working_hours.items()}
        )

        return Doctor(
            id=self.id,
            name=self.name.strip(),
            specialization=self.specialization.strip(),
            consultation_fee=self.consultation_fee,
            working_hours=template,
            consultation_duration=self.consultation_duration,
            rating=self.rating,
            review_count=self.review_count,
            experience=self.experience,
            email=self.email,
            location=Location(**self.location.model_dump()),
            qualifications=tuple(q.strip() for q in self.qualifications),
            languages=tuple(lang.strip() for lang in self.languages),
            bio=self.bio.strip(),
            profile_image=self.profile_image,
            is_active=self.is_active,
            is_verified=self.is_verified,
            is_online=self.is_online,
        )


class PatientRecord(RecordModel):
    id: str
    name: str
    email: str = ""
    phone: str = ""
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[str] = None
    is_active: bool = True

    def to_domain(self) -> Patient:
        return Patient(**self.model_dump())


class MedicationRecord(RecordModel):
    name: str
    dosage: str
    frequency: str
    duration: str
    instructions: str = ""


class PrescriptionRecord(RecordModel):
    medications: List[MedicationRecord] = Field(default_factory=list)
    instructions: str = ""
    follow_up_date: Optional[date] = None

    def to_domain(self) -> Prescription:
        return Prescription(
            medications=tuple(Medication(**m.model_dump()) for m in self.medications),
            instructions=self.instructions,
            follow_up_date=self.follow_up_date,
        )

    @classmethod
    def from_domain(cls, prescription: Prescription) -> "PrescriptionRecord":
        return cls(
            medications=[
                MedicationRecord(
                    name=m.name,
                    dosage=m.dosage,
                    frequency=m.frequency,
                    duration=m.duration,
                    instructions=m.instructions,
                )
                for m in prescription.medications
            ],
            instructions=prescription.instructions,
            follow_up_date=prescription.follow_up_date,
        )


class ConsultationRecord(RecordModel):
    """Serialized form of a consultation; timestamps are ISO 8601 strings."""
    id: str
    doctor_id: str
    patient_id: str
    type: ConsultationType
    scheduled_at: str
    duration: int = Field(gt=0)
    fee: float = Field(ge=0)
    status: ConsultationStatus = ConsultationStatus.SCHEDULED
    symptoms: str = ""
    doctor_name: str = ""
    specialization: str = ""
    created_at: Optional[str] = None
    consultation_notes: Optional[str] = None
    prescription: Optional[PrescriptionRecord] = None
    cancellation_reason: Optional[str] = None

    def to_domain(self) -> Consultation:
        return Consultation(
            id=self.id,
            doctor_id=self.doctor_id,
            patient_id=self.patient_id,
            type=self.type,
            scheduled_at=pendulum.parse(self.scheduled_at),
            duration=self.duration,
            fee=self.fee,
            status=self.status,
            symptoms=self.symptoms,
            doctor_name=self.doctor_name,
            specialization=self.specialization,
            created_at=pendulum.parse(self.created_at) if self.created_at else None,
            consultation_notes=self.consultation_notes,
            prescription=self.prescription.to_domain() if self.prescription else None,
            cancellation_reason=self.cancellation_reason,
        )

    @classmethod
    def from_domain(cls, consultation: Consultation) -> "ConsultationRecord":
        return cls(
            id=consultation.id,
            doctor_id=consultation.doctor_id,
            patient_id=consultation.patient_id,
            type=consultation.type,
            scheduled_at=consultation.scheduled_at.to_iso8601_string(),
            duration=consultation.duration,
            fee=consultation.fee,
            status=consultation.status,
            symptoms=consultation.symptoms,
            doctor_name=consultation.doctor_name,
            specialization=consultation.specialization,
            created_at=(
                consultation.created_at.to_iso8601_string()
                if consultation.created_at else None
            ),
            consultation_notes=consultation.consultation_notes,
            prescription=(
                PrescriptionRecord.from_domain(consultation.prescription)
                if consultation.prescription else None
            ),
            cancellation_reason=consultation.cancellation_reason,
        )


class SeedData(BaseModel):
    doctors: List[DoctorRecord] = Field(default_factory=list)
    patients: List[PatientRecord] = Field(default_factory=list)


def load_seed_data(path: Path) -> Tuple[List[Doctor], List[Patient]]:
    """
    Load doctors and patients from a YAML or JSON file.

    Args:
        path: File with top-level ``doctors`` and ``patients`` lists

    Returns:
        Tuple of (doctors, patients) as domain objects

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file or any record is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ValueError(f"Invalid data file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError("Data file must contain a mapping at the root level.")

    seed = SeedData(**data)
    return (
        [record.to_domain() for record in seed.doctors],
        [record.to_domain() for record in seed.patients],
    )
