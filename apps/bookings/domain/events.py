"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
They are published through the message bus after the unit of work commits.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money


# ===== Booking Events =====

@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A booking was admitted in PENDING state

    Triggers:
    - Payment initiation by the payment collaborator
    - Notify venue owner
    """
    booking_id: UUID
    venue_id: str
    user_id: str
    date: str
    start_time: str
    end_time: str
    total_price: Money
    parent_booking_id: UUID | None = None


@dataclass(kw_only=True)
class BookingConfirmed(DomainEvent):
    """Event: PENDING -> CONFIRMED (payment succeeded or venue approved)"""
    booking_id: UUID
    venue_id: str


@dataclass(kw_only=True)
class BookingRejected(DomainEvent):
    """Event: PENDING -> REJECTED by the venue"""
    booking_id: UUID
    venue_id: str
    reason: str


@dataclass(kw_only=True)
class BookingFailed(DomainEvent):
    """Event: PENDING -> FAILED, usually because payment failed"""
    booking_id: UUID
    venue_id: str
    reason: str


@dataclass(kw_only=True)
class BookingCheckedIn(DomainEvent):
    """Event: Players arrived (CONFIRMED -> CHECKED_IN)"""
    booking_id: UUID
    venue_id: str


@dataclass(kw_only=True)
class BookingCompleted(DomainEvent):
    """
    Event: Check-out recorded (-> COMPLETED)

    Triggers:
    - Request review from user
    - Venue payout
    """
    booking_id: UUID
    venue_id: str
    user_id: str


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: Booking cancelled by user, venue or admin

    Triggers:
    - Refund eligibility check (cancellation policy collaborator)
    - Notify the other party
    """
    booking_id: UUID
    venue_id: str
    cancelled_by: str
    reason: str
    old_status: str


# ===== Payment Events =====

@dataclass(kw_only=True)
class PaymentStatusChanged(DomainEvent):
    """Event: payment sub-state moved; metadata is opaque to the engine"""
    booking_id: UUID
    old_status: str
    new_status: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(kw_only=True)
class RefundRecorded(DomainEvent):
    booking_id: UUID
    refund_id: UUID
    amount: Money
    total_refunded: Money
    payment_status: str


# ===== Recurrence Events =====

@dataclass(kw_only=True)
class RecurringSeriesCreated(DomainEvent):
    """Event: children of a recurring booking were admitted"""
    parent_booking_id: UUID
    child_booking_ids: List[UUID]
    skipped_dates: List[str]
