"""
Booking requests

What a caller asks the engine to admit. Requests validate themselves on
construction and raise ValidationError before any store is touched.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from shared.domain.value_objects import TimeWindow, parse_calendar_date

from apps.bookings.domain.exceptions import ValidationError


class Frequency(Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'


class BookingType(Enum):
    FULL_VENUE = 'full_venue'
    PARTIAL_VENUE = 'partial_venue'


@dataclass(frozen=True)
class RecurrenceRule:
    """Every `interval` days/weeks/months until `end_date` inclusive"""
    frequency: Frequency
    interval: int
    end_date: str
    exclude_dates: Tuple[str, ...] = ()

    def __post_init__(self):
        try:
            object.__setattr__(self, 'frequency', Frequency(self.frequency))
        except ValueError:
            raise ValidationError(f"Unknown recurrence frequency {self.frequency!r}") from None
        if not isinstance(self.interval, int) or isinstance(self.interval, bool) or self.interval < 1:
            raise ValidationError(f"Recurrence interval must be a positive integer, got {self.interval!r}")
        try:
            parse_calendar_date(self.end_date)
        except ValueError as e:
            raise ValidationError(f"Recurrence end date: {e}") from None
        object.__setattr__(self, 'exclude_dates', tuple(self.exclude_dates or ()))

    @classmethod
    def from_dict(cls, data: dict) -> 'RecurrenceRule':
        return cls(
            frequency=data.get('frequency'),
            interval=data.get('interval', 1),
            end_date=data.get('endDate'),
            exclude_dates=tuple(data.get('excludeDates') or ()),
        )


@dataclass(frozen=True)
class BookingRequest:
    """
    A request to occupy `venue_id` on `date` from `start_time` to `end_time`

    Children produced by recurrence expansion carry a reference to the
    request they were expanded from in `parent`; it takes no part in
    equality.
    """
    venue_id: str
    date: str
    start_time: str
    end_time: str
    total_players: int = 1
    booking_type: BookingType = BookingType.FULL_VENUE
    court_number: Optional[str] = None
    notes: str = ''
    is_recurring: bool = False
    recurrence_rule: Optional[RecurrenceRule] = None
    parent: Optional['BookingRequest'] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not self.venue_id:
            raise ValidationError("Venue id is required")
        try:
            parse_calendar_date(self.date)
            TimeWindow(self.start_time, self.end_time)
        except ValueError as e:
            raise ValidationError(str(e)) from None
        try:
            object.__setattr__(self, 'booking_type', BookingType(self.booking_type))
        except ValueError:
            raise ValidationError(f"Unknown booking type {self.booking_type!r}") from None
        if self.total_players < 1:
            raise ValidationError("Total players must be at least 1")
        if self.is_recurring:
            if self.recurrence_rule is None:
                raise ValidationError("Recurring request needs a recurrence rule")
            if self.recurrence_rule.end_date < self.date:
                raise ValidationError(
                    f"Recurrence end date {self.recurrence_rule.end_date} is before {self.date}"
                )

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    @property
    def admission_key(self) -> Tuple[str, str]:
        return self.venue_id, self.date

    @classmethod
    def from_dict(cls, data: dict) -> 'BookingRequest':
        """Build a request from the camelCase document the clients send"""
        rule = data.get('recurrenceRule') or data.get('recurringDetails')
        try:
            return cls(
                venue_id=data.get('venueId') or '',
                date=data.get('date'),
                start_time=data.get('startTime'),
                end_time=data.get('endTime'),
                total_players=int(data.get('totalPlayers', 1)),
                booking_type=data.get('bookingType', BookingType.FULL_VENUE.value),
                court_number=data.get('courtNumber'),
                notes=data.get('notes') or '',
                is_recurring=bool(data.get('isRecurring', False)),
                recurrence_rule=RecurrenceRule.from_dict(rule) if rule else None,
            )
        except ValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed booking request: {e}") from None
