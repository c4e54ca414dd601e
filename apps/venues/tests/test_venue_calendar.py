from decimal import Decimal

import pytest

from shared.domain.value_objects import TimeWindow

from apps.venues.domain.calendar import (
    AvailabilityException,
    DayAvailability,
    TimeSlot,
    VenueCalendar,
)


WEEKLY_DOC = {
    "monday": {"isOpen": True, "openTime": "06:00", "closeTime": "23:00"},
    "saturday": {
        "isOpen": True,
        "slots": [
            {"id": "morning", "startTime": "06:00", "endTime": "10:00"},
            {"id": "evening", "startTime": "18:00", "endTime": "22:00", "priceMultiplier": "1.5"},
        ],
    },
    "sunday": {"isOpen": False},
}


def test_from_dict_reads_template_and_exceptions():
    calendar = VenueCalendar.from_dict(
        WEEKLY_DOC,
        [{"date": "2024-12-25", "isAvailable": False, "reason": "Christmas"}],
    )

    assert calendar.weekly_template["monday"].open_time == "06:00"
    saturday = calendar.weekly_template["saturday"]
    assert [slot.id for slot in saturday.slots] == ["morning", "evening"]
    assert saturday.slots[1].price_multiplier == Decimal("1.5")
    assert calendar.exception_for("2024-12-25").reason == "Christmas"
    assert calendar.exception_for("2024-12-26") is None


def test_to_dict_keeps_the_stored_shape():
    calendar = VenueCalendar.from_dict(WEEKLY_DOC, [{"date": "2024-12-25", "isAvailable": False}])
    weekly, exceptions = calendar.to_dict()

    assert weekly["sunday"] == {"isOpen": False}
    assert weekly["saturday"]["slots"][1]["priceMultiplier"] == "1.5"
    assert exceptions == [{"date": "2024-12-25", "isAvailable": False}]


def test_duplicate_exception_dates_are_rejected():
    with pytest.raises(ValueError):
        VenueCalendar.from_dict({}, [
            {"date": "2024-05-01", "isAvailable": False},
            {"date": "2024-05-01", "isAvailable": True},
        ])


def test_add_exception_replaces_same_date():
    calendar = VenueCalendar()
    first = AvailabilityException(date="2024-05-01", is_available=False, reason="maintenance")
    second = AvailabilityException(date="2024-05-01", is_available=True)

    assert calendar.add_exception(first) is None
    assert calendar.add_exception(second) == first
    assert len(calendar.exceptions) == 1
    assert calendar.exception_for("2024-05-01").is_available


def test_remove_exception():
    calendar = VenueCalendar()
    calendar.add_exception(AvailabilityException(date="2024-05-01", is_available=False))

    assert calendar.remove_exception("2024-05-01")
    assert not calendar.remove_exception("2024-05-01")


def test_unknown_weekday_rejected():
    with pytest.raises(ValueError):
        VenueCalendar.from_dict({"funday": {"isOpen": True}}, [])


def test_day_hours_must_be_ordered():
    with pytest.raises(ValueError):
        DayAvailability(is_open=True, open_time="22:00", close_time="08:00")


def test_slot_validation():
    with pytest.raises(ValueError):
        TimeSlot(id="bad", start_time="10:00", end_time="09:00")
    with pytest.raises(ValueError):
        TimeSlot(id="free", start_time="09:00", end_time="10:00", price_multiplier=0)


def test_slot_contains_whole_windows_only():
    slot = TimeSlot(id="evening", start_time="18:00", end_time="22:00")

    assert slot.window == TimeWindow("18:00", "22:00")
    assert slot.contains(TimeWindow("18:00", "22:00"))
    assert slot.contains(TimeWindow("19:00", "20:30"))
    assert not slot.contains(TimeWindow("17:30", "19:00"))
    assert not slot.contains(TimeWindow("21:00", "22:30"))
