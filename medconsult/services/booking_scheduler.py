"""
Booking and consultation lifecycle.

The scheduler validates requested times against the slots the doctor's
template actually produces, freezes the fee and duration at booking time and
drives every status change through the transition table. The conflict rule
(one active consultation per doctor and slot) is enforced atomically by the
consultation store's ``insert_if_no_conflict``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, List, Optional, Protocol

from pendulum import DateTime

from ..domain.exceptions import (
    ConflictError,
    EarlyStartError,
    InvalidSlotError,
    NoDoctorAvailableError,
    NotFoundError,
    SlotAlreadyBookedError,
)
from ..domain.models import (
    CLINICAL_RECORD_STATUSES,
    Consultation,
    ConsultationStatus,
    ConsultationType,
    Doctor,
    DoctorFilters,
    Prescription,
)
from ..domain.slot_generator import DEFAULT_WINDOW_DAYS, SlotGenerator
from ..domain.state_machine import ensure_transition
from .doctor_directory import Clock, DoctorStore, directory_sort_key

logger = logging.getLogger(__name__)


class PatientStore(Protocol):
    def exists(self, patient_id: str) -> bool:
        """Return True if an active patient with this id exists."""


class ConsultationStore(Protocol):
    """Persistence boundary for consultations."""

    def insert_if_no_conflict(self, consultation: Consultation) -> Consultation:
        """
        Store the consultation unless an active one already holds the same
        doctor and slot. Check and insert happen as one atomic step.

        Raises:
            ConflictError: If the slot is already held
        """

    def find_by_id(self, consultation_id: str) -> Optional[Consultation]:
        """Return the consultation or None."""

    def update_status(
        self,
        consultation_id: str,
        status: ConsultationStatus,
        *,
        expected: ConsultationStatus | None = None,
        **changes,
    ) -> Consultation:
        """
        Set a new status (plus optional field changes) and return the result.

        When ``expected`` is given the write only happens if the stored status
        still equals it; otherwise ``InvalidTransitionError`` is raised.
        """

    def attach_record(
        self,
        consultation_id: str,
        *,
        notes: str | None = None,
        prescription: Prescription | None = None,
    ) -> Consultation:
        """Store consultation notes and/or a prescription."""

    def list_by_patient(self, patient_id: str) -> List[Consultation]:
        """Return all consultations of a patient."""

    def list_by_doctor(self, doctor_id: str) -> List[Consultation]:
        """Return all consultations of a doctor."""


class DoctorMatchPolicy(Protocol):
    """Chooses a doctor for an instant consultation."""

    def select(self, candidates: List[Doctor]) -> Optional[Doctor]:
        """Return the chosen doctor, or None if none of the candidates fits."""


class HighestRatedPolicy:
    """Pick the highest-rated online doctor, most reviews breaking ties."""

    def select(self, candidates: List[Doctor]) -> Optional[Doctor]:
        if not candidates:
            return None
        return min(candidates, key=directory_sort_key)


class BookingScheduler:
    """
    Orchestrates slot validation, booking and the consultation state machine.

    All validation happens before anything is written, so a failed call never
    leaves a partially created consultation behind.
    """

    def __init__(
        self,
        doctor_store: DoctorStore,
        patient_store: PatientStore,
        consultation_store: ConsultationStore,
        slot_generator: SlotGenerator,
        clock: Clock,
        *,
        match_policy: DoctorMatchPolicy | None = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
        booking_horizon_days: int = 30,
        enforce_start_time: bool = True,
        start_grace_minutes: int = 0,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._doctor_store = doctor_store
        self._patient_store = patient_store
        self._consultation_store = consultation_store
        self._slot_generator = slot_generator
        self._clock = clock
        self._match_policy = match_policy or HighestRatedPolicy()
        self._window_days = window_days
        self._booking_horizon_days = booking_horizon_days
        self._enforce_start_time = enforce_start_time
        self._start_grace_minutes = start_grace_minutes
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    def book(
        self,
        doctor_id: str,
        patient_id: str,
        type: ConsultationType | str,
        scheduled_at: DateTime,
        symptoms: str = "",
    ) -> Consultation:
        """
        Reserve a slot with a doctor.

        Raises:
            NotFoundError: If the doctor is not bookable or the patient is unknown
            InvalidSlotError: If ``scheduled_at`` is not one of the doctor's slots
            SlotAlreadyBookedError: If the slot is held by another consultation
        """
        doctor = self._bookable_doctor(doctor_id)
        self._ensure_patient(patient_id)
        consultation_type = ConsultationType(type)

        now = self._clock.now()
        slot = scheduled_at.in_timezone(self._slot_generator.timezone)
        self._validate_slot(doctor, slot, now)

        consultation = self._new_consultation(
            doctor,
            patient_id,
            consultation_type,
            slot,
            symptoms,
            now,
            status=ConsultationStatus.SCHEDULED,
        )

        try:
            stored = self._consultation_store.insert_if_no_conflict(consultation)
        except ConflictError as exc:
            logger.warning("Rejected booking for doctor %s at %s: slot taken", doctor_id, slot)
            raise SlotAlreadyBookedError(doctor_id, slot) from exc

        logger.info(
            "Booked consultation %s with doctor %s for patient %s at %s",
            stored.id,
            doctor_id,
            patient_id,
            slot,
        )
        return stored

    def start_instant(
        self,
        patient_id: str,
        type: ConsultationType | str,
        symptoms: str = "",
    ) -> Consultation:
        """
        Start an ongoing consultation right away with an online doctor.

        Raises:
            NotFoundError: If the patient is unknown
            NoDoctorAvailableError: If no online doctor qualifies
        """
        self._ensure_patient(patient_id)
        consultation_type = ConsultationType(type)
        online = DoctorFilters(is_online=True)
        candidates = [
            doctor for doctor in self._doctor_store.find_eligible_by_filters(online)
            if online.matches(doctor)
        ]

        now = self._clock.now().in_timezone(self._slot_generator.timezone)
        while True:
            doctor = self._match_policy.select(candidates)
            if doctor is not None and doctor.id not in {c.id for c in candidates}:
                logger.warning("Match policy picked doctor %s outside the candidates", doctor.id)
                doctor = None
            if doctor is None:
                logger.warning("No online doctor available for patient %s", patient_id)
                raise NoDoctorAvailableError("No online doctor is available right now")

            consultation = self._new_consultation(
                doctor,
                patient_id,
                consultation_type,
                now,
                symptoms,
                now,
                status=ConsultationStatus.ONGOING,
            )
            try:
                stored = self._consultation_store.insert_if_no_conflict(consultation)
            except ConflictError:
                candidates = [c for c in candidates if c.id != doctor.id]
                continue

            logger.info(
                "Started instant consultation %s with doctor %s for patient %s",
                stored.id,
                doctor.id,
                patient_id,
            )
            return stored

    def transition(
        self,
        consultation_id: str,
        target_status: ConsultationStatus | str,
    ) -> Consultation:
        """
        Move a consultation to a new status.

        Raises:
            NotFoundError: If the consultation does not exist
            InvalidTransitionError: If the change is not allowed from the current status
            EarlyStartError: If a scheduled consultation is started before its slot
        """
        return self._transition(consultation_id, ConsultationStatus(target_status))

    def start(self, consultation_id: str) -> Consultation:
        return self._transition(consultation_id, ConsultationStatus.ONGOING)

    def complete(
        self,
        consultation_id: str,
        notes: str | None = None,
        prescription: Prescription | None = None,
    ) -> Consultation:
        """Complete an ongoing consultation, optionally storing notes and a prescription."""
        changes = {}
        if notes is not None:
            changes["consultation_notes"] = notes
        if prescription is not None:
            changes["prescription"] = prescription
        return self._transition(consultation_id, ConsultationStatus.COMPLETED, **changes)

    def cancel(self, consultation_id: str, reason: str | None = None) -> Consultation:
        """Cancel a scheduled or ongoing consultation, freeing its slot."""
        return self._transition(
            consultation_id,
            ConsultationStatus.CANCELLED,
            cancellation_reason=reason,
        )

    def record_notes(
        self,
        consultation_id: str,
        notes: str | None = None,
        prescription: Prescription | None = None,
    ) -> Consultation:
        """Attach notes and/or a prescription to an ongoing or completed consultation."""
        consultation = self.get(consultation_id)
        if consultation.status not in CLINICAL_RECORD_STATUSES:
            raise ValueError(
                f"Notes can only be recorded for ongoing or completed consultations, "
                f"consultation {consultation_id} is {consultation.status}"
            )
        return self._consultation_store.attach_record(
            consultation_id, notes=notes, prescription=prescription
        )

    def get(self, consultation_id: str) -> Consultation:
        consultation = self._consultation_store.find_by_id(consultation_id)
        if consultation is None:
            raise NotFoundError("Consultation", consultation_id)
        return consultation

    def list_for_patient(self, patient_id: str) -> List[Consultation]:
        """All consultations of a patient in chronological order."""
        self._ensure_patient(patient_id)
        return sorted(
            self._consultation_store.list_by_patient(patient_id),
            key=lambda c: c.scheduled_at,
        )

    def open_slots(
        self,
        doctor_id: str,
        from_date: DateTime | None = None,
        days: int | None = None,
    ) -> List[DateTime]:
        """Generated slots that are not held by an active consultation."""
        doctor = self._bookable_doctor(doctor_id)
        now = self._clock.now()
        slots = self._slot_generator.generate_for_doctor(
            doctor, from_date or now, days or self._window_days, now=now
        )
        taken = {
            consultation.scheduled_at
            for consultation in self._consultation_store.list_by_doctor(doctor_id)
            if consultation.is_active
        }
        return [slot for slot in slots if slot not in taken]

    def _transition(
        self,
        consultation_id: str,
        target: ConsultationStatus,
        **changes,
    ) -> Consultation:
        consultation = self.get(consultation_id)
        ensure_transition(consultation.status, target)

        if consultation.status == ConsultationStatus.SCHEDULED and target == ConsultationStatus.ONGOING:
            self._check_start_time(consultation)

        updated = self._consultation_store.update_status(
            consultation_id,
            target,
            expected=consultation.status,
            **changes,
        )
        logger.info(
            "Consultation %s moved from %s to %s",
            consultation_id,
            consultation.status,
            target,
        )
        return updated

    def _check_start_time(self, consultation: Consultation) -> None:
        now = self._clock.now()
        earliest = consultation.scheduled_at.subtract(minutes=self._start_grace_minutes)
        if now >= earliest:
            return

        logger.warning(
            "Consultation %s started at %s before its slot at %s",
            consultation.id,
            now,
            consultation.scheduled_at,
        )
        if self._enforce_start_time:
            raise EarlyStartError(
                consultation.status,
                ConsultationStatus.ONGOING,
                f"scheduled for {consultation.scheduled_at.to_iso8601_string()}",
            )

    def _validate_slot(self, doctor: Doctor, slot: DateTime, now: DateTime) -> None:
        if slot <= now:
            raise InvalidSlotError(doctor.id, slot, "slot is not in the future")

        horizon = now.in_timezone(self._slot_generator.timezone).start_of("day").add(
            days=self._booking_horizon_days
        )
        if slot >= horizon:
            raise InvalidSlotError(
                doctor.id,
                slot,
                f"slot is more than {self._booking_horizon_days} days ahead",
            )

        # Re-derive the doctor's slots for that day instead of trusting the caller.
        day_slots = self._slot_generator.generate_for_doctor(doctor, slot, 1, now=now)
        if slot not in day_slots:
            logger.warning("Rejected booking for doctor %s at %s: not a slot", doctor.id, slot)
            raise InvalidSlotError(doctor.id, slot, "not on the doctor's schedule")

    def _bookable_doctor(self, doctor_id: str) -> Doctor:
        doctor = self._doctor_store.find_by_id(doctor_id)
        if doctor is None or not doctor.is_bookable:
            raise NotFoundError("Doctor", doctor_id)
        return doctor

    def _ensure_patient(self, patient_id: str) -> None:
        if not self._patient_store.exists(patient_id):
            raise NotFoundError("Patient", patient_id)

    def _new_consultation(
        self,
        doctor: Doctor,
        patient_id: str,
        consultation_type: ConsultationType,
        scheduled_at: DateTime,
        symptoms: str,
        now: DateTime,
        *,
        status: ConsultationStatus,
    ) -> Consultation:
        return Consultation(
            id=self._id_factory(),
            doctor_id=doctor.id,
            patient_id=patient_id,
            type=consultation_type,
            scheduled_at=scheduled_at,
            duration=doctor.consultation_duration,
            fee=doctor.consultation_fee,
            status=status,
            symptoms=symptoms,
            doctor_name=doctor.name,
            specialization=doctor.specialization,
            created_at=now,
        )
