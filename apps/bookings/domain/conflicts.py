"""
Conflict Detector

Second line of admission: a window that passed the calendar check is
rejected if it overlaps any booking that still occupies the venue.

The bookings handed in are already narrowed to one venue and one date;
cancelled, rejected and failed bookings are skipped here, not by the store.
Windows are half-open, so back-to-back bookings never conflict.
"""

from typing import Iterable, Optional

from shared.domain.value_objects import TimeWindow

from apps.bookings.domain.entities import Booking


class ConflictDetector:

    def find_conflict(
        self,
        existing_bookings: Iterable[Booking],
        start_time: str,
        end_time: str,
    ) -> Optional[Booking]:
        """First active booking overlapping the window, or None"""
        requested = TimeWindow(start_time, end_time)
        for booking in existing_bookings:
            if not booking.occupies_calendar:
                continue
            if booking.window.overlaps_with(requested):
                return booking
        return None

    def has_conflict(
        self,
        existing_bookings: Iterable[Booking],
        start_time: str,
        end_time: str,
    ) -> bool:
        return self.find_conflict(existing_bookings, start_time, end_time) is not None
