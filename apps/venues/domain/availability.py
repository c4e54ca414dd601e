"""
Availability Engine

Decides whether a venue's calendar admits a requested window on a date,
before any existing booking is considered.

Precedence:
1. A date exception, when present, wins over the weekly template. A closed
   exception denies the date; an exception with slots admits only windows
   fully contained in one slot; an open exception without slots admits the
   whole date, even when the weekday is normally closed.
2. Otherwise the weekday entry of the template decides: closed days deny,
   slots require full containment, open/close hours bound the window.
3. An open day with neither slots nor hours admits any window.
"""

import logging
from typing import Iterable, Optional

from shared.domain.value_objects import TimeWindow, parse_calendar_date

from apps.venues.domain.calendar import TimeSlot, VenueCalendar

logger = logging.getLogger(__name__)


def _containing_slot(slots: Iterable[TimeSlot], window: TimeWindow) -> Optional[TimeSlot]:
    return next((slot for slot in slots if slot.contains(window)), None)


class AvailabilityEngine:
    """Stateless calendar check; safe to share between threads"""

    def is_calendar_available(
        self,
        calendar: VenueCalendar,
        date: str,
        start_time: str,
        end_time: str,
    ) -> bool:
        available, _ = self._evaluate(calendar, date, TimeWindow(start_time, end_time))
        return available

    def matching_slot(
        self,
        calendar: VenueCalendar,
        date: str,
        start_time: str,
        end_time: str,
    ) -> Optional[TimeSlot]:
        """The slot that admits the window, or None when no slot rule applied"""
        _, slot = self._evaluate(calendar, date, TimeWindow(start_time, end_time))
        return slot

    def _evaluate(self, calendar: VenueCalendar, date: str, window: TimeWindow):
        on = parse_calendar_date(date)

        exception = calendar.exception_for(date)
        if exception is not None:
            if not exception.is_available:
                logger.debug("%s closed by exception (%s)", date, exception.reason or 'no reason')
                return False, None
            if exception.slots is not None:
                slot = _containing_slot(exception.slots, window)
                return slot is not None, slot
            # Open all day, template not consulted
            return True, None

        day = calendar.day(on)
        if not day.is_open:
            return False, None

        if day.slots:
            slot = _containing_slot(day.slots, window)
            return slot is not None, slot

        # A missing bound leaves that side of the day unconstrained
        if day.open_time and window.start_time < day.open_time:
            return False, None
        if day.close_time and window.end_time > day.close_time:
            return False, None
        return True, None
