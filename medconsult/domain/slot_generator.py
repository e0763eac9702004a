"""
Core business logic for turning weekly working hours into bookable slots.

Pure domain logic: no store access, no wall clock. The caller passes ``now``
explicitly, so identical inputs always produce identical slots.
"""

import logging
from datetime import time
from typing import List

from pendulum import DateTime

from .models import Doctor, WorkingHoursTemplate, Weekday

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


class SlotGenerator:
    """
    Generates candidate consultation slots from a working-hours template.

    Algorithm:
    1. Truncate the start date to midnight in the business timezone
    2. For each day in the window, look up that weekday's template entry
    3. Walk the working window in steps of the slot duration, keeping only
       slots that fit completely before the end of the window
    4. Drop every slot that is not strictly after ``now``
    """

    def __init__(self, timezone: str = "Europe/Berlin"):
        self.timezone = timezone

    def generate(
        self,
        template: WorkingHoursTemplate,
        from_date: DateTime,
        num_days: int = DEFAULT_WINDOW_DAYS,
        slot_duration_minutes: int = 30,
        *,
        now: DateTime,
    ) -> List[DateTime]:
        """
        Generate all bookable slot start times in the window.

        Args:
            template: Weekly working-hours template
            from_date: Any instant on the first calendar day of the window
            num_days: Number of calendar days to cover
            slot_duration_minutes: Length of a single slot
            now: Current instant; slots at or before it are discarded

        Returns:
            Chronologically ordered list of slot start times
        """
        if num_days < 1:
            raise ValueError(f"num_days must be at least 1, got {num_days}")
        if slot_duration_minutes <= 0:
            raise ValueError(f"Slot duration must be positive, got {slot_duration_minutes}")

        slots: List[DateTime] = []
        first_day = from_date.in_timezone(self.timezone).start_of("day")

        for offset in range(num_days):
            day = first_day.add(days=offset)
            slots.extend(
                self._slots_for_day(template, day, slot_duration_minutes, now)
            )

        logger.debug(
            "Generated %d slots from %s over %d day(s)",
            len(slots),
            first_day.to_date_string(),
            num_days,
        )
        return slots

    def generate_for_doctor(
        self,
        doctor: Doctor,
        from_date: DateTime,
        num_days: int = DEFAULT_WINDOW_DAYS,
        *,
        now: DateTime,
    ) -> List[DateTime]:
        """Generate slots using the doctor's own template and consultation duration."""
        return self.generate(
            doctor.working_hours,
            from_date,
            num_days,
            doctor.consultation_duration,
            now=now,
        )

    def _slots_for_day(
        self,
        template: WorkingHoursTemplate,
        day: DateTime,
        duration: int,
        now: DateTime,
    ) -> List[DateTime]:
        """
        Walk a single day's working window.

        Example:
        Window: 09:00 - 10:45, duration 30
        Result: [09:00, 09:30, 10:00] (10:30 would run past 10:45)
        """
        hours = template.for_day(Weekday.of(day))
        if not hours.has_window:
            return []

        current = self._at(day, hours.start)
        end = self._at(day, hours.end)

        slots: List[DateTime] = []
        while current.add(minutes=duration) <= end:
            if current > now:
                slots.append(current)
            current = current.add(minutes=duration)

        return slots

    @staticmethod
    def _at(day: DateTime, clock: time) -> DateTime:
        return day.set(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)
