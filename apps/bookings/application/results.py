"""
Admission results

Calendar denials and conflicts are ordinary answers, so the pipeline
returns them as values the caller can turn into precise messages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from uuid import UUID

from apps.bookings.domain.entities import Booking
from apps.bookings.domain.requests import BookingRequest


class AdmissionOutcome(Enum):
    ADMITTED = 'admitted'
    CALENDAR_UNAVAILABLE = 'calendar_unavailable'
    CONFLICT = 'conflict'


@dataclass(frozen=True)
class AdmissionResult:
    request: BookingRequest
    outcome: AdmissionOutcome
    booking: Optional[Booking] = None
    conflicting_booking_id: Optional[UUID] = None

    @property
    def admitted(self) -> bool:
        return self.outcome is AdmissionOutcome.ADMITTED

    @property
    def message(self) -> str:
        request = self.request
        if self.outcome is AdmissionOutcome.ADMITTED:
            return f"Booked {request.venue_id} on {request.date} {request.start_time}-{request.end_time}"
        if self.outcome is AdmissionOutcome.CALENDAR_UNAVAILABLE:
            return (
                f"Venue {request.venue_id} is not open for "
                f"{request.start_time}-{request.end_time} on {request.date}"
            )
        return (
            f"{request.start_time}-{request.end_time} on {request.date} "
            f"overlaps an existing booking at venue {request.venue_id}"
        )


@dataclass(frozen=True)
class SkippedDate:
    """A child date of a recurring booking that was not admitted"""
    date: str
    reason: str


@dataclass(frozen=True)
class RecurringAdmissionResult:
    """
    Outcome of a recurring request

    The parent is admitted (or denied) on its own; children that fail do
    not undo it. When the parent is denied no child is attempted.
    """
    parent: AdmissionResult
    children: List[AdmissionResult] = field(default_factory=list)
    skipped: List[SkippedDate] = field(default_factory=list)

    @property
    def admitted(self) -> bool:
        return self.parent.admitted

    @property
    def child_bookings(self) -> List[Booking]:
        return [child.booking for child in self.children if child.booking is not None]

    @property
    def admitted_dates(self) -> List[str]:
        return [booking.date for booking in self.child_bookings]

    @property
    def skipped_dates(self) -> List[str]:
        return [skipped.date for skipped in self.skipped]
