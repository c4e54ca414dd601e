"""
Venue Calendar

Pure data describing when a venue can be booked, independent of the
bookings already admitted:
- TimeSlot: a bookable sub-window of a day, with an optional price multiplier
- DayAvailability: one entry of the weekly template
- AvailabilityException: a date-specific override of the weekly template
- VenueCalendar: weekly template + exceptions (at most one per date)

Calendars are stored as JSON documents on the venue row; from_dict/to_dict
translate between that document shape and these value objects.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Tuple

from shared.domain.base import ValueObject
from shared.domain.value_objects import TimeWindow, parse_calendar_date, validate_clock_time

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


def day_name(value: date) -> str:
    """Weekday key of the weekly template for a calendar date"""
    return WEEKDAYS[value.weekday()]


@dataclass(frozen=True)
class TimeSlot(ValueObject):
    id: str
    start_time: str
    end_time: str
    price_multiplier: Decimal = Decimal('1')

    def __post_init__(self):
        # TimeWindow validates format and ordering
        TimeWindow(self.start_time, self.end_time)
        if not isinstance(self.price_multiplier, Decimal):
            object.__setattr__(self, 'price_multiplier', Decimal(str(self.price_multiplier)))
        if self.price_multiplier <= 0:
            raise ValueError(f"Slot {self.id}: price multiplier must be positive")

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    def contains(self, window: TimeWindow) -> bool:
        """Full containment, partial overlap does not count"""
        return self.window.contains(window)

    @classmethod
    def from_dict(cls, data: dict) -> 'TimeSlot':
        return cls(
            id=str(data.get('id') or f"{data['startTime']}-{data['endTime']}"),
            start_time=data['startTime'],
            end_time=data['endTime'],
            price_multiplier=Decimal(str(data.get('priceMultiplier', 1))),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'priceMultiplier': str(self.price_multiplier),
        }


def _slots_from(data) -> Optional[Tuple[TimeSlot, ...]]:
    if data is None:
        return None
    return tuple(TimeSlot.from_dict(item) for item in data)


@dataclass(frozen=True)
class DayAvailability(ValueObject):
    """
    One weekday of the template

    Either slots or open/close hours may constrain the day; an open day
    with neither is bookable at any time.
    """
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    slots: Optional[Tuple[TimeSlot, ...]] = None

    def __post_init__(self):
        if self.open_time is not None:
            validate_clock_time(self.open_time)
        if self.close_time is not None:
            validate_clock_time(self.close_time)
        if self.open_time and self.close_time and self.open_time >= self.close_time:
            raise ValueError(
                f"Opening time ({self.open_time}) must be before closing time ({self.close_time})"
            )
        if self.slots is not None and not isinstance(self.slots, tuple):
            object.__setattr__(self, 'slots', tuple(self.slots))

    @classmethod
    def closed(cls) -> 'DayAvailability':
        return cls(is_open=False)

    @classmethod
    def from_dict(cls, data: dict) -> 'DayAvailability':
        return cls(
            is_open=bool(data.get('isOpen', False)),
            open_time=data.get('openTime'),
            close_time=data.get('closeTime'),
            slots=_slots_from(data.get('slots')),
        )

    def to_dict(self) -> dict:
        data = {'isOpen': self.is_open}
        if self.open_time is not None:
            data['openTime'] = self.open_time
        if self.close_time is not None:
            data['closeTime'] = self.close_time
        if self.slots is not None:
            data['slots'] = [slot.to_dict() for slot in self.slots]
        return data


@dataclass(frozen=True)
class AvailabilityException(ValueObject):
    """Override of the weekly template for one calendar date"""
    date: str
    is_available: bool
    slots: Optional[Tuple[TimeSlot, ...]] = None
    reason: str = ''

    def __post_init__(self):
        parse_calendar_date(self.date)
        if self.slots is not None and not isinstance(self.slots, tuple):
            object.__setattr__(self, 'slots', tuple(self.slots))

    @property
    def id(self) -> str:
        return self.date

    @classmethod
    def from_dict(cls, data: dict) -> 'AvailabilityException':
        return cls(
            date=data['date'],
            is_available=bool(data.get('isAvailable', False)),
            slots=_slots_from(data.get('slots')),
            reason=data.get('reason') or '',
        )

    def to_dict(self) -> dict:
        data = {'date': self.date, 'isAvailable': self.is_available}
        if self.slots is not None:
            data['slots'] = [slot.to_dict() for slot in self.slots]
        if self.reason:
            data['reason'] = self.reason
        return data


@dataclass
class VenueCalendar:
    """
    Weekly template plus date exceptions

    Invariant: at most one exception per date. Weekdays absent from the
    template are closed.
    """
    weekly_template: Dict[str, DayAvailability] = field(default_factory=dict)
    exceptions: Dict[str, AvailabilityException] = field(default_factory=dict)

    def __post_init__(self):
        unknown = set(self.weekly_template) - set(WEEKDAYS)
        if unknown:
            raise ValueError(f"Unknown weekdays in template: {sorted(unknown)}")
        for key, exception in self.exceptions.items():
            if key != exception.date:
                raise ValueError(f"Exception keyed by {key} describes {exception.date}")

    def day(self, on: date) -> DayAvailability:
        return self.weekly_template.get(day_name(on)) or DayAvailability.closed()

    def exception_for(self, on: str) -> Optional[AvailabilityException]:
        return self.exceptions.get(on)

    def add_exception(self, exception: AvailabilityException) -> Optional[AvailabilityException]:
        """Set the exception for its date, returning the one it replaced"""
        previous = self.exceptions.get(exception.date)
        self.exceptions[exception.date] = exception
        return previous

    def remove_exception(self, on: str) -> bool:
        return self.exceptions.pop(on, None) is not None

    @classmethod
    def from_dict(cls, weekly: dict | None, exceptions: list | None) -> 'VenueCalendar':
        """
        Build a calendar from its stored JSON documents

        `weekly` maps weekday names to day documents, `exceptions` is a list
        of exception documents. Two exceptions for the same date are
        rejected.
        """
        template = {
            name.lower(): DayAvailability.from_dict(doc)
            for name, doc in (weekly or {}).items()
        }
        by_date: Dict[str, AvailabilityException] = {}
        for doc in exceptions or []:
            exception = AvailabilityException.from_dict(doc)
            if exception.date in by_date:
                raise ValueError(f"More than one availability exception for {exception.date}")
            by_date[exception.date] = exception
        return cls(weekly_template=template, exceptions=by_date)

    def to_dict(self) -> Tuple[dict, list]:
        weekly = {name: day.to_dict() for name, day in self.weekly_template.items()}
        exceptions = [self.exceptions[key].to_dict() for key in sorted(self.exceptions)]
        return weekly, exceptions
