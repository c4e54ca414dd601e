"""
Booking error taxonomy

Calendar denials and booking conflicts are expected outcomes and are
reported through AdmissionResult, not raised. Everything here is raised.
"""


class BookingError(Exception):
    """Base class for booking engine errors"""


class ValidationError(BookingError, ValueError):
    """Malformed request; rejected before admission and never retried"""


class VenueNotFound(ValidationError):
    def __init__(self, venue_id: str):
        super().__init__(f"Venue {venue_id} not found")
        self.venue_id = venue_id


class BookingNotFound(BookingError, LookupError):
    def __init__(self, booking_ref):
        super().__init__(f"Booking {booking_ref} not found")
        self.booking_ref = booking_ref


class InvalidTransition(BookingError, ValueError):
    """Lifecycle or payment transition not allowed from the current state"""


class WriteConflict(BookingError):
    """Lost the admission race; the caller re-reads and retries"""


class AdmissionFailed(BookingError):
    """Admission could not complete within the retry budget"""

    def __init__(self, venue_id: str, date: str, attempts: int):
        super().__init__(
            f"Admission for venue {venue_id} on {date} failed after {attempts} attempts"
        )
        self.venue_id = venue_id
        self.date = date
        self.attempts = attempts


class StorageError(BookingError):
    """Persistence layer unavailable; always safe for the caller to retry"""
