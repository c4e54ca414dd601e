"""
Common Value Objects

Value objects used across multiple domains:
- Money: Represents monetary amounts with currency
- TimeWindow: Represents a wall-clock window on a single day ("HH:MM" - "HH:MM")

Dates and times are kept as zero-padded strings ("YYYY-MM-DD", "HH:MM").
Lexical comparison of such strings matches chronological order, and no
timezone conversion is ever applied to them.
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('INR', 'KZT', 'USD', 'EUR', 'RUB')

_CLOCK_RE = re.compile(r'^(?:[01]\d|2[0-3]):[0-5]\d$|^24:00$')
_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')

CENT = Decimal('0.01')


def parse_calendar_date(value: str) -> date:
    """
    Parse a naive "YYYY-MM-DD" calendar date

    Raises ValueError for anything that is not a zero-padded, existing date.
    """
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid date {value!r}: no such calendar day") from None


def validate_clock_time(value: str) -> str:
    """Check a zero-padded 24h "HH:MM" string ("24:00" allowed as end of day)"""
    if not isinstance(value, str) or not _CLOCK_RE.match(value):
        raise ValueError(f"Invalid time {value!r}, expected zero-padded HH:MM")
    return value


def minutes_of_day(value: str) -> int:
    hours, minutes = validate_clock_time(value).split(':')
    return int(hours) * 60 + int(minutes)


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'INR'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        # Validation
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'INR') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def __truediv__(self, factor) -> 'Money':
        """Divide money by a factor"""
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only divide Money by number")
        if factor == 0:
            raise ValueError("Cannot divide by zero")
        return Money(self.amount / Decimal(str(factor)), self.currency)

    def quantize(self) -> 'Money':
        """Round half-up to whole cents"""
        return Money(self.amount.quantize(CENT, rounding=ROUND_HALF_UP), self.currency)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Time window value object

    Represents [start_time, end_time) on a single calendar day, both as
    zero-padded "HH:MM" strings.
    """
    start_time: str
    end_time: str

    def __post_init__(self):
        validate_clock_time(self.start_time)
        validate_clock_time(self.end_time)
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Start time ({self.start_time}) must be before end time ({self.end_time})"
            )

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        """
        Check if this window overlaps with another

        Windows are half-open, so a window ending at 10:00 and one
        starting at 10:00 do not overlap.

        Examples:
            - TimeWindow(09:00, 10:30) overlaps with TimeWindow(10:00, 11:00) -> True
            - TimeWindow(09:00, 10:00) overlaps with TimeWindow(10:00, 11:00) -> False
        """
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")

        # Overlap formula: start1 < end2 AND start2 < end1
        return (self.start_time < other.end_time and
                other.start_time < self.end_time)

    def contains(self, other: 'TimeWindow') -> bool:
        """Full containment: other lies entirely inside this window"""
        return self.start_time <= other.start_time and other.end_time <= self.end_time

    @property
    def duration_minutes(self) -> int:
        return minutes_of_day(self.end_time) - minutes_of_day(self.start_time)

    def __str__(self):
        return f"{self.start_time}-{self.end_time}"

    def __repr__(self):
        return f"TimeWindow({self.start_time!r}, {self.end_time!r})"
