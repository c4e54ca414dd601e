"""
In-memory persistence gateway

Single-process store used by tests and local tooling. All reads and writes
go through one mutex and every object crossing the boundary is copied, so
callers never share state with the store or with each other.
"""

import copy
import threading
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from apps.bookings.application.gateway import PersistenceGateway
from apps.bookings.domain.conflicts import ConflictDetector
from apps.bookings.domain.entities import Booking, BookingStatus, RecurringLink
from apps.bookings.domain.exceptions import BookingNotFound, VenueNotFound, WriteConflict
from apps.venues.domain.entities import Venue


def _detached(booking: Booking) -> Booking:
    clone = copy.deepcopy(booking)
    clone.clear_events()
    return clone


class InMemoryPersistenceGateway(PersistenceGateway):

    def __init__(self, venues: Optional[List[Venue]] = None):
        self._mutex = threading.Lock()
        self._venues: Dict[str, Venue] = {}
        self._bookings: Dict[UUID, Booking] = {}
        self._codes: Dict[str, UUID] = {}
        self._detector = ConflictDetector()
        for venue in venues or ():
            self.add_venue(venue)

    # ----- venues -----

    def add_venue(self, venue: Venue) -> None:
        with self._mutex:
            self._venues[venue.id] = copy.deepcopy(venue)

    def get_venue(self, venue_id: str) -> Venue:
        with self._mutex:
            venue = self._venues.get(venue_id)
            if venue is None:
                raise VenueNotFound(venue_id)
            return copy.deepcopy(venue)

    # ----- bookings -----

    def _day(self, venue_id: str, date: str) -> List[Booking]:
        return [
            b for b in self._bookings.values()
            if b.venue_id == venue_id and b.date == date
        ]

    def list_active_bookings(self, venue_id: str, date: str) -> List[Booking]:
        with self._mutex:
            day = sorted(self._day(venue_id, date), key=lambda b: b.start_time)
            return [_detached(b) for b in day]

    def create_booking(self, booking: Booking, conditional: bool = True) -> UUID:
        with self._mutex:
            if booking.id in self._bookings:
                raise WriteConflict(f"Booking {booking.id} already exists")
            if booking.booking_code in self._codes:
                raise WriteConflict(f"Booking code {booking.booking_code} already in use")
            if conditional:
                clash = self._detector.find_conflict(
                    self._day(booking.venue_id, booking.date), booking.start_time, booking.end_time,
                )
                if clash is not None:
                    raise WriteConflict(
                        f"{booking.venue_id} {booking.date} {booking.start_time}-{booking.end_time} "
                        f"overlaps booking {clash.booking_code}"
                    )
            self._bookings[booking.id] = _detached(booking)
            self._codes[booking.booking_code] = booking.id
            return booking.id

    def update_booking_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        *,
        expected_updated_at: Optional[datetime] = None,
        **fields,
    ) -> None:
        with self._mutex:
            stored = self._bookings.get(booking_id)
            if stored is None:
                raise BookingNotFound(booking_id)
            if expected_updated_at is not None and stored.updated_at != expected_updated_at:
                raise WriteConflict(f"Booking {stored.booking_code} changed since it was read")
            stored.status = BookingStatus(status)
            fields = copy.deepcopy(fields)
            child_ids = fields.pop('child_booking_ids', None)
            if child_ids is not None:
                if stored.recurring_link is None:
                    stored.recurring_link = RecurringLink()
                stored.recurring_link.child_booking_ids = list(child_ids)
            for name, value in fields.items():
                setattr(stored, name, value)

    def get_booking(self, booking_id: UUID) -> Booking:
        with self._mutex:
            stored = self._bookings.get(booking_id)
            if stored is None:
                raise BookingNotFound(booking_id)
            return _detached(stored)

    def get_booking_by_code(self, booking_code: str) -> Booking:
        with self._mutex:
            booking_id = self._codes.get(booking_code)
            if booking_id is None:
                raise BookingNotFound(booking_code)
            return _detached(self._bookings[booking_id])

    def list_user_bookings(
        self,
        user_id: str,
        status: Optional[BookingStatus] = None,
        limit: int = 20,
    ) -> List[Booking]:
        with self._mutex:
            found = [
                b for b in self._bookings.values()
                if b.user_id == user_id and (status is None or b.status == status)
            ]
            found.sort(key=lambda b: (b.date, b.start_time), reverse=True)
            return [_detached(b) for b in found[:limit]]

    def list_venue_bookings(
        self,
        venue_id: str,
        date: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 20,
    ) -> List[Booking]:
        with self._mutex:
            found = [
                b for b in self._bookings.values()
                if b.venue_id == venue_id
                and (date is None or b.date == date)
                and (status is None or b.status == status)
            ]
            found.sort(key=lambda b: (b.date, b.start_time))
            return [_detached(b) for b in found[:limit]]

    def __len__(self):
        with self._mutex:
            return len(self._bookings)
