"""
Persistence Gateway

The storage contract the booking engine consumes. Implementations:
- apps.bookings.infrastructure.memory.InMemoryPersistenceGateway
- apps.bookings.infrastructure.django_gateway.DjangoPersistenceGateway

Every implementation raises StorageError when the store itself is
unavailable, and WriteConflict from a conditional create or update that
lost a race.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from apps.bookings.domain.entities import Booking, BookingStatus
from apps.venues.domain.calendar import VenueCalendar
from apps.venues.domain.entities import Venue


class PersistenceGateway(ABC):

    @abstractmethod
    def get_venue(self, venue_id: str) -> Venue:
        """Venue with its calendar; raises VenueNotFound"""

    def get_venue_calendar(self, venue_id: str) -> VenueCalendar:
        return self.get_venue(venue_id).calendar

    @abstractmethod
    def list_active_bookings(self, venue_id: str, date: str) -> List[Booking]:
        """
        All bookings of the venue on the date, whatever their status

        Status filtering is the ConflictDetector's job. The list is a
        consistent snapshot taken at a single point.
        """

    @abstractmethod
    def create_booking(self, booking: Booking, conditional: bool = True) -> UUID:
        """
        Persist a new booking

        With conditional=True the write succeeds only if no overlapping
        booking that occupies the calendar exists at commit time; otherwise
        WriteConflict is raised and nothing is written.
        """

    @abstractmethod
    def update_booking_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        *,
        expected_updated_at: Optional[datetime] = None,
        **fields,
    ) -> None:
        """
        Persist a status change together with the mutable booking fields
        (see Booking.mutable_fields); raises BookingNotFound

        With expected_updated_at the write only happens while the stored
        booking still carries that timestamp; otherwise WriteConflict is
        raised and nothing is written.
        """

    @abstractmethod
    def get_booking(self, booking_id: UUID) -> Booking:
        """Raises BookingNotFound"""

    def get_booking_for_update(self, booking_id: UUID) -> Booking:
        """
        Read a booking that is about to be changed

        Stores with row locks keep it locked until the surrounding
        transaction ends.
        """
        return self.get_booking(booking_id)

    @abstractmethod
    def get_booking_by_code(self, booking_code: str) -> Booking:
        """Raises BookingNotFound"""

    @abstractmethod
    def list_user_bookings(
        self,
        user_id: str,
        status: Optional[BookingStatus] = None,
        limit: int = 20,
    ) -> List[Booking]:
        """Newest first (date, then start time, descending)"""

    @abstractmethod
    def list_venue_bookings(
        self,
        venue_id: str,
        date: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 20,
    ) -> List[Booking]:
        """Chronological (date, then start time, ascending)"""

    def release_thread_resources(self) -> None:
        """Called on worker threads after they finish with the gateway"""

    def save_booking(self, booking: Booking, expected_updated_at: Optional[datetime] = None) -> None:
        """Persist the booking's current status and mutable fields"""
        self.update_booking_status(
            booking.id,
            booking.status,
            expected_updated_at=expected_updated_at,
            **booking.mutable_fields(),
        )
