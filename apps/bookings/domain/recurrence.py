"""
Recurrence Expander

Turns a recurring request into the requests of its children. Expansion is
a pure function of the base request and the rule: no I/O, no clock, same
input -> same output in the same order.

Candidate k (k >= 1) is the base date shifted by k steps of the rule, so
monthly series do not drift after a short month: a series starting on
31 January visits 29 February (2024), then 31 March.
"""

import calendar
import dataclasses
from datetime import date, timedelta
from typing import Iterator, List

from shared.domain.value_objects import parse_calendar_date

from apps.bookings.domain.exceptions import ValidationError
from apps.bookings.domain.requests import BookingRequest, Frequency, RecurrenceRule

DEFAULT_MAX_OCCURRENCES = 366


def add_months(start: date, months: int) -> date:
    """Shift by calendar months, clamping to the last day of shorter months"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def _nth_occurrence(start: date, rule: RecurrenceRule, k: int) -> date:
    if rule.frequency is Frequency.DAILY:
        return start + timedelta(days=k * rule.interval)
    if rule.frequency is Frequency.WEEKLY:
        return start + timedelta(days=7 * k * rule.interval)
    return add_months(start, k * rule.interval)


def occurrence_dates(start: str, rule: RecurrenceRule) -> Iterator[str]:
    """Candidate dates after `start` up to rule.end_date, exclusions not applied"""
    first = parse_calendar_date(start)
    end = parse_calendar_date(rule.end_date)
    k = 1
    while True:
        candidate = _nth_occurrence(first, rule, k)
        if candidate > end:
            return
        yield candidate.isoformat()
        k += 1


class RecurrenceExpander:

    def __init__(self, max_occurrences: int = DEFAULT_MAX_OCCURRENCES):
        self.max_occurrences = max_occurrences

    def expand(self, base_request: BookingRequest, rule: RecurrenceRule) -> List[BookingRequest]:
        """
        Child requests of a recurring booking, in date order

        The base date itself is never included. Children are copies of the
        base request with only the date changed, pointing back at it
        through `parent`.
        """
        excluded = set(rule.exclude_dates)
        children = []
        for count, candidate in enumerate(occurrence_dates(base_request.date, rule), start=1):
            if count > self.max_occurrences:
                raise ValidationError(
                    f"Recurrence until {rule.end_date} yields more than "
                    f"{self.max_occurrences} occurrences"
                )
            if candidate in excluded:
                continue
            children.append(dataclasses.replace(
                base_request,
                date=candidate,
                parent=base_request,
            ))
        return children
