"""
In-memory implementations of the doctor, patient and consultation stores.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional

from ..domain.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from ..domain.models import (
    Consultation,
    ConsultationStatus,
    Doctor,
    DoctorFilters,
    Patient,
    Prescription,
)


class InMemoryDoctorStore:
    """
    Doctor records held in a dict.

    Doctors are never removed; ``deactivate`` flips ``is_active`` so that
    consultation history keeps pointing at an existing record.
    """

    def __init__(self, doctors: Iterable[Doctor] = ()):
        self._lock = threading.Lock()
        self._doctors: Dict[str, Doctor] = {}
        for doctor in doctors:
            self.add(doctor)

    def add(self, doctor: Doctor) -> Doctor:
        with self._lock:
            if doctor.id in self._doctors:
                raise ValueError(f"Doctor already exists: {doctor.id}")
            self._doctors[doctor.id] = doctor
        return doctor

    def update(self, doctor_id: str, **changes) -> Doctor:
        """Replace fields of a doctor record; the result is validated again."""
        with self._lock:
            current = self._doctors.get(doctor_id)
            if current is None:
                raise NotFoundError("Doctor", doctor_id)
            updated = replace(current, **changes)
            self._doctors[doctor_id] = updated
        return updated

    def deactivate(self, doctor_id: str) -> Doctor:
        return self.update(doctor_id, is_active=False)

    def find_by_id(self, doctor_id: str) -> Optional[Doctor]:
        return self._doctors.get(doctor_id)

    def find_eligible_by_filters(self, filters: DoctorFilters) -> List[Doctor]:
        with self._lock:
            doctors = list(self._doctors.values())
        return [doctor for doctor in doctors if filters.matches(doctor)]

    def distinct_specializations(self) -> List[str]:
        with self._lock:
            doctors = list(self._doctors.values())
        return sorted({doctor.specialization for doctor in doctors if doctor.is_bookable})

    def all(self) -> List[Doctor]:
        with self._lock:
            return list(self._doctors.values())


class InMemoryPatientStore:
    def __init__(self, patients: Iterable[Patient] = ()):
        self._patients: Dict[str, Patient] = {patient.id: patient for patient in patients}

    def add(self, patient: Patient) -> Patient:
        if patient.id in self._patients:
            raise ValueError(f"Patient already exists: {patient.id}")
        self._patients[patient.id] = patient
        return patient

    def find_by_id(self, patient_id: str) -> Optional[Patient]:
        return self._patients.get(patient_id)

    def exists(self, patient_id: str) -> bool:
        patient = self._patients.get(patient_id)
        return patient is not None and patient.is_active

    def deactivate(self, patient_id: str) -> Patient:
        patient = self._patients.get(patient_id)
        if patient is None:
            raise NotFoundError("Patient", patient_id)
        self._patients[patient_id] = replace(patient, is_active=False)
        return self._patients[patient_id]

    def all(self) -> List[Patient]:
        return list(self._patients.values())


class InMemoryConsultationStore:
    """
    Consultations keyed by id.

    Every mutation runs under one lock, which makes the conflict check and the
    insert in ``insert_if_no_conflict`` a single atomic step.
    """

    def __init__(self, consultations: Iterable[Consultation] = ()):
        self._lock = threading.Lock()
        self._consultations: Dict[str, Consultation] = {
            consultation.id: consultation for consultation in consultations
        }

    def insert_if_no_conflict(self, consultation: Consultation) -> Consultation:
        with self._locked():
            if consultation.id in self._consultations:
                raise ValueError(f"Consultation already exists: {consultation.id}")
            if consultation.is_active and self._holds_slot(consultation):
                raise ConflictError(consultation.doctor_id, consultation.scheduled_at)
            self._commit(consultation)
        return consultation

    def find_by_id(self, consultation_id: str) -> Optional[Consultation]:
        with self._locked():
            return self._consultations.get(consultation_id)

    def update_status(
        self,
        consultation_id: str,
        status: ConsultationStatus,
        *,
        expected: ConsultationStatus | None = None,
        **changes,
    ) -> Consultation:
        with self._locked():
            current = self._get(consultation_id)
            if expected is not None and current.status != expected:
                raise InvalidTransitionError(current.status, status)
            updated = replace(current, status=status, **changes)
            self._commit(updated)
        return updated

    def attach_record(
        self,
        consultation_id: str,
        *,
        notes: str | None = None,
        prescription: Prescription | None = None,
    ) -> Consultation:
        changes = {}
        if notes is not None:
            changes["consultation_notes"] = notes
        if prescription is not None:
            changes["prescription"] = prescription

        with self._locked():
            updated = replace(self._get(consultation_id), **changes)
            self._commit(updated)
        return updated

    def list_by_patient(self, patient_id: str) -> List[Consultation]:
        with self._locked():
            return [c for c in self._consultations.values() if c.patient_id == patient_id]

    def list_by_doctor(self, doctor_id: str) -> List[Consultation]:
        with self._locked():
            return [c for c in self._consultations.values() if c.doctor_id == doctor_id]

    def all(self) -> List[Consultation]:
        with self._locked():
            return list(self._consultations.values())

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Guard a read or a check-then-write on the consultations."""
        with self._lock:
            yield

    def _get(self, consultation_id: str) -> Consultation:
        consultation = self._consultations.get(consultation_id)
        if consultation is None:
            raise NotFoundError("Consultation", consultation_id)
        return consultation

    def _holds_slot(self, candidate: Consultation) -> bool:
        return any(
            existing.is_active
            and existing.doctor_id == candidate.doctor_id
            and existing.scheduled_at == candidate.scheduled_at
            for existing in self._consultations.values()
        )

    def _commit(self, consultation: Consultation) -> None:
        staged = dict(self._consultations)
        staged[consultation.id] = consultation
        self._persist(staged)
        self._consultations = staged

    def _persist(self, consultations: Dict[str, Consultation]) -> None:
        """Hook for stores that write through to durable storage; called under the lock."""
