"""Calendar checks: weekly template, slots and date exceptions."""

import pytest

from apps.venues.domain.availability import AvailabilityEngine
from apps.venues.domain.calendar import (
    AvailabilityException,
    DayAvailability,
    TimeSlot,
    VenueCalendar,
)

# 2024-01-01 is a Monday, 2024-01-07 a Sunday
MONDAY = "2024-01-01"
SUNDAY = "2024-01-07"

SLOTS = (
    TimeSlot(id="am", start_time="06:00", end_time="10:00"),
    TimeSlot(id="pm", start_time="18:00", end_time="22:00"),
)


@pytest.fixture
def engine():
    return AvailabilityEngine()


@pytest.fixture
def calendar():
    return VenueCalendar(weekly_template={
        "monday": DayAvailability(is_open=True, open_time="08:00", close_time="20:00"),
        "tuesday": DayAvailability(is_open=True, slots=SLOTS),
        "wednesday": DayAvailability(is_open=True),
        "thursday": DayAvailability(is_open=True, open_time="12:00"),
        "sunday": DayAvailability(is_open=False),
    })


class TestWeeklyTemplate:

    def test_inside_opening_hours(self, engine, calendar):
        assert engine.is_calendar_available(calendar, MONDAY, "08:00", "20:00")
        assert engine.is_calendar_available(calendar, MONDAY, "10:00", "11:00")

    def test_outside_opening_hours(self, engine, calendar):
        assert not engine.is_calendar_available(calendar, MONDAY, "07:00", "09:00")
        assert not engine.is_calendar_available(calendar, MONDAY, "19:00", "21:00")

    def test_closed_weekday(self, engine, calendar):
        assert not engine.is_calendar_available(calendar, SUNDAY, "10:00", "11:00")

    def test_weekday_missing_from_template_is_closed(self, engine, calendar):
        # 2024-01-05 is a Friday
        assert not engine.is_calendar_available(calendar, "2024-01-05", "10:00", "11:00")

    def test_open_day_without_bounds(self, engine, calendar):
        assert engine.is_calendar_available(calendar, "2024-01-03", "00:00", "24:00")

    def test_single_bound_only_constrains_its_side(self, engine, calendar):
        assert engine.is_calendar_available(calendar, "2024-01-04", "12:00", "24:00")
        assert not engine.is_calendar_available(calendar, "2024-01-04", "11:00", "13:00")


class TestSlots:

    def test_window_must_fit_inside_one_slot(self, engine, calendar):
        tuesday = "2024-01-02"
        assert engine.is_calendar_available(calendar, tuesday, "06:00", "10:00")
        assert engine.is_calendar_available(calendar, tuesday, "07:00", "08:00")
        assert not engine.is_calendar_available(calendar, tuesday, "09:00", "11:00")
        assert not engine.is_calendar_available(calendar, tuesday, "12:00", "13:00")

    def test_window_spanning_two_slots_is_denied(self, engine, calendar):
        assert not engine.is_calendar_available(calendar, "2024-01-02", "06:00", "22:00")

    def test_matching_slot(self, engine, calendar):
        slot = engine.matching_slot(calendar, "2024-01-02", "19:00", "20:00")
        assert slot.id == "pm"
        assert engine.matching_slot(calendar, MONDAY, "10:00", "11:00") is None


class TestExceptions:

    def test_closed_exception_overrides_open_day(self, engine, calendar):
        calendar.add_exception(AvailabilityException(date=MONDAY, is_available=False, reason="repairs"))
        assert not engine.is_calendar_available(calendar, MONDAY, "10:00", "11:00")

    def test_open_exception_overrides_closed_day(self, engine, calendar):
        calendar.add_exception(AvailabilityException(date=SUNDAY, is_available=True))
        assert engine.is_calendar_available(calendar, SUNDAY, "10:00", "11:00")

    def test_open_exception_without_slots_ignores_template_hours(self, engine, calendar):
        calendar.add_exception(AvailabilityException(date=MONDAY, is_available=True))
        assert engine.is_calendar_available(calendar, MONDAY, "05:00", "23:00")

    def test_exception_slots_replace_template(self, engine, calendar):
        calendar.add_exception(AvailabilityException(
            date=MONDAY,
            is_available=True,
            slots=(TimeSlot(id="special", start_time="14:00", end_time="16:00"),),
        ))
        assert engine.is_calendar_available(calendar, MONDAY, "14:30", "15:30")
        assert not engine.is_calendar_available(calendar, MONDAY, "10:00", "11:00")

    def test_exception_with_empty_slots_denies(self, engine, calendar):
        calendar.add_exception(AvailabilityException(date=MONDAY, is_available=True, slots=()))
        assert not engine.is_calendar_available(calendar, MONDAY, "10:00", "11:00")

    def test_exception_only_affects_its_date(self, engine, calendar):
        calendar.add_exception(AvailabilityException(date=MONDAY, is_available=False))
        assert engine.is_calendar_available(calendar, "2024-01-08", "10:00", "11:00")


def test_invalid_input_raises(engine, calendar):
    with pytest.raises(ValueError):
        engine.is_calendar_available(calendar, "2024-13-01", "10:00", "11:00")
    with pytest.raises(ValueError):
        engine.is_calendar_available(calendar, MONDAY, "11:00", "10:00")
