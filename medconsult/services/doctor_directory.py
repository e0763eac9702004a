"""
Doctor discovery: filtering, ordering and pagination over the doctor store.

Each page of results is annotated with the doctors' next open slots. The slot
computations are independent and pure, so they are fanned out to a thread
pool; ``Executor.map`` keeps results in submission order, which keeps the page
order deterministic.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Protocol

from pendulum import DateTime

from ..domain.exceptions import DirectoryUnavailableError, NotFoundError, StoreUnavailableError
from ..domain.models import DirectoryEntry, DirectoryPage, Doctor, DoctorFilters, Pagination
from ..domain.slot_generator import DEFAULT_WINDOW_DAYS, SlotGenerator

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Source of the current instant, injected so slot generation stays deterministic."""

    def now(self) -> DateTime:
        """Return the current instant."""


class DoctorStore(Protocol):
    """Protocol describing the doctor store behaviour needed by the services."""

    def find_eligible_by_filters(self, filters: DoctorFilters) -> List[Doctor]:
        """Return active, verified doctors matching the filters, in any order."""

    def find_by_id(self, doctor_id: str) -> Optional[Doctor]:
        """Return the doctor with this id, active or not."""

    def distinct_specializations(self) -> List[str]:
        """Return the specializations of active, verified doctors."""


def directory_sort_key(doctor: Doctor):
    """Highest rating first, then most reviewed; id keeps equal doctors stable."""
    return (-doctor.rating, -doctor.review_count, doctor.id)


class DoctorDirectory:
    """
    Search, filter, sort and paginate doctors.

    The store may filter on its side, but eligibility and the filters are
    re-applied here so that a lenient store can never leak inactive or
    unverified doctors into the results.
    """

    def __init__(
        self,
        doctor_store: DoctorStore,
        slot_generator: SlotGenerator,
        clock: Clock,
        *,
        preview_slots: int = 4,
        window_days: int = DEFAULT_WINDOW_DAYS,
        annotation_workers: int = 4,
    ) -> None:
        self._doctor_store = doctor_store
        self._slot_generator = slot_generator
        self._clock = clock
        self._preview_slots = preview_slots
        self._window_days = window_days
        self._annotation_workers = annotation_workers

    def search(
        self,
        filters: DoctorFilters | None = None,
        pagination: Pagination | None = None,
    ) -> DirectoryPage:
        """
        Return one page of matching doctors with a preview of their open slots.

        Raises:
            DirectoryUnavailableError: If the doctor store cannot be reached
        """
        filters = filters or DoctorFilters()
        pagination = pagination or Pagination()

        try:
            candidates = self._doctor_store.find_eligible_by_filters(filters)
        except StoreUnavailableError as exc:
            logger.error("Doctor store unavailable during search: %s", exc)
            raise DirectoryUnavailableError() from exc

        matching = sorted(
            (doctor for doctor in candidates if filters.matches(doctor)),
            key=directory_sort_key,
        )
        total = len(matching)
        page_doctors = matching[pagination.offset:pagination.offset + pagination.limit]

        logger.debug(
            "Directory search matched %d doctor(s), returning %d on page %d",
            total,
            len(page_doctors),
            pagination.page,
        )

        return DirectoryPage(
            items=tuple(self._annotate(page_doctors)),
            total=total,
            total_pages=pagination.total_pages(total),
            page=pagination.page,
            limit=pagination.limit,
        )

    def get_doctor(self, doctor_id: str) -> Doctor:
        """Return an active doctor or raise ``NotFoundError``."""
        doctor = self._doctor_store.find_by_id(doctor_id)
        if doctor is None or not doctor.is_active:
            raise NotFoundError("Doctor", doctor_id)
        return doctor

    def available_slots(
        self,
        doctor_id: str,
        from_date: DateTime | None = None,
        days: int | None = None,
    ) -> List[DateTime]:
        """Generate the doctor's slots for a window starting at ``from_date`` (default: now)."""
        doctor = self.get_doctor(doctor_id)
        now = self._clock.now()
        return self._slot_generator.generate_for_doctor(
            doctor,
            from_date or now,
            days or self._window_days,
            now=now,
        )

    def specializations(self) -> List[str]:
        """Sorted distinct specializations of discoverable doctors."""
        try:
            return sorted(set(self._doctor_store.distinct_specializations()))
        except StoreUnavailableError as exc:
            raise DirectoryUnavailableError() from exc

    def _annotate(self, doctors: List[Doctor]) -> List[DirectoryEntry]:
        if not doctors:
            return []

        now = self._clock.now()

        def preview(doctor: Doctor) -> DirectoryEntry:
            slots = self._slot_generator.generate_for_doctor(
                doctor, now, self._window_days, now=now
            )
            return DirectoryEntry(
                doctor=doctor,
                available_slots=tuple(slots[:self._preview_slots]),
            )

        workers = min(self._annotation_workers, len(doctors))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(preview, doctors))
