"""
Tests for slot generator.
"""

from datetime import time

import pendulum
import pytest

from conftest import TZ, make_doctor, weekday_template
from medconsult.domain.models import DayHours, Weekday, WorkingHoursTemplate
from medconsult.domain.slot_generator import SlotGenerator


def _monday_only(start: time, end: time) -> WorkingHoursTemplate:
    return WorkingHoursTemplate(days={Weekday.MONDAY: DayHours(start=start, end=end)})


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def setup_method(self):
        self.generator = SlotGenerator(timezone=TZ)
        self.monday = pendulum.parse("2024-11-25 00:00", tz=TZ)
        self.before = pendulum.parse("2024-11-24 12:00", tz=TZ)

    def test_monday_morning_slots(self):
        """Mon 09:00-11:00 at 30 minutes gives four slots."""
        slots = self.generator.generate(
            _monday_only(time(9, 0), time(11, 0)),
            self.monday,
            num_days=1,
            slot_duration_minutes=30,
            now=self.before,
        )

        assert [slot.format("HH:mm") for slot in slots] == ["09:00", "09:30", "10:00", "10:30"]
        assert all(slot.timezone_name == TZ for slot in slots)

    def test_past_slots_are_dropped(self):
        """Slots at or before now are never returned."""
        now = pendulum.parse("2024-11-25 09:30", tz=TZ)

        slots = self.generator.generate(
            _monday_only(time(9, 0), time(11, 0)),
            self.monday,
            num_days=1,
            slot_duration_minutes=30,
            now=now,
        )

        assert [slot.format("HH:mm") for slot in slots] == ["10:00", "10:30"]
        assert all(slot > now for slot in slots)

    def test_from_date_is_truncated_to_midnight(self):
        """A from_date in the afternoon still covers that whole day."""
        slots = self.generator.generate(
            _monday_only(time(9, 0), time(11, 0)),
            pendulum.parse("2024-11-25 15:45", tz=TZ),
            num_days=1,
            slot_duration_minutes=30,
            now=self.before,
        )

        assert len(slots) == 4

    def test_from_date_in_other_timezone(self):
        """Days are counted in the business timezone, not the caller's."""
        # 23:30 UTC on Sunday is already Monday in Berlin
        from_date = pendulum.datetime(2024, 11, 24, 23, 30, tz="UTC")

        slots = self.generator.generate(
            _monday_only(time(9, 0), time(11, 0)),
            from_date,
            num_days=1,
            slot_duration_minutes=30,
            now=self.before,
        )

        assert len(slots) == 4

    def test_partial_period_is_dropped(self):
        """A window that does not divide evenly loses its trailing remainder."""
        slots = self.generator.generate(
            _monday_only(time(9, 0), time(10, 45)),
            self.monday,
            num_days=1,
            slot_duration_minutes=30,
            now=self.before,
        )

        assert [slot.format("HH:mm") for slot in slots] == ["09:00", "09:30", "10:00"]

    def test_empty_window(self):
        slots = self.generator.generate(
            _monday_only(time(9, 0), time(9, 0)),
            self.monday,
            num_days=1,
            slot_duration_minutes=30,
            now=self.before,
        )

        assert slots == []

    def test_non_working_and_unset_days(self):
        template = WorkingHoursTemplate(days={
            Weekday.MONDAY: DayHours(start=time(9, 0), end=time(11, 0), is_working=False),
            Weekday.TUESDAY: DayHours(start=time(9, 0), is_working=True),
        })

        slots = self.generator.generate(
            template, self.monday, num_days=7, slot_duration_minutes=30, now=self.before
        )

        assert slots == []

    @pytest.mark.parametrize("duration", [15, 20, 30, 40, 60, 120])
    def test_slot_count_per_working_day(self, duration):
        """Evenly dividing durations give (end - start) / duration slots on each working day."""
        template = weekday_template(time(8, 0), time(16, 0))

        slots = self.generator.generate(
            template, self.monday, num_days=7, slot_duration_minutes=duration, now=self.before
        )

        per_day = 8 * 60 // duration
        assert len(slots) == 5 * per_day
        for offset in range(5):
            day = self.monday.add(days=offset).to_date_string()
            assert sum(1 for slot in slots if slot.to_date_string() == day) == per_day
        assert not any(Weekday.of(slot).is_weekend for slot in slots)

    def test_output_is_chronological_and_unique(self):
        slots = self.generator.generate(
            weekday_template(), self.monday, num_days=14, slot_duration_minutes=20, now=self.before
        )

        assert slots == sorted(slots)
        assert len(set(slots)) == len(slots)

    def test_identical_inputs_identical_output(self):
        template = weekday_template()
        first = self.generator.generate(template, self.monday, 7, 30, now=self.before)
        second = self.generator.generate(template, self.monday, 7, 30, now=self.before)

        assert first == second

    def test_window_crossing_dst_change(self):
        """Wall-clock hours stay fixed across the end of daylight saving time."""
        # Berlin falls back on Sunday 2024-10-27
        template = WorkingHoursTemplate(days={
            Weekday.FRIDAY: DayHours(start=time(9, 0), end=time(10, 0)),
            Weekday.MONDAY: DayHours(start=time(9, 0), end=time(10, 0)),
        })
        friday = pendulum.parse("2024-10-25 00:00", tz=TZ)

        slots = self.generator.generate(
            template, friday, num_days=4, slot_duration_minutes=30,
            now=pendulum.parse("2024-10-24 00:00", tz=TZ),
        )

        assert [slot.format("ddd HH:mm") for slot in slots] == [
            "Fri 09:00", "Fri 09:30", "Mon 09:00", "Mon 09:30",
        ]

    def test_invalid_arguments(self):
        template = weekday_template()
        with pytest.raises(ValueError, match="num_days"):
            self.generator.generate(template, self.monday, 0, 30, now=self.before)
        with pytest.raises(ValueError, match="duration"):
            self.generator.generate(template, self.monday, 1, 0, now=self.before)

    def test_generate_for_doctor_uses_profile_duration(self):
        doctor = make_doctor(consultation_duration=45, working_hours=weekday_template(time(9, 0), time(12, 0)))

        slots = self.generator.generate_for_doctor(doctor, self.monday, 1, now=self.before)

        assert [slot.format("HH:mm") for slot in slots] == ["09:00", "09:45", "10:30", "11:15"]
