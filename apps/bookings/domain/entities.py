"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Aggregate root representing one admitted time window at a venue
- BookingStatus: FSM states for the booking lifecycle
- PaymentStatus: Payment sub-state, fed by the payment collaborator
- Price, Refund, RecurringLink: values owned by the booking
"""

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from shared.domain.base import Aggregate, ValueObject, utcnow
from shared.domain.value_objects import Money, TimeWindow

from apps.bookings.domain import events
from apps.bookings.domain.exceptions import InvalidTransition, ValidationError
from apps.bookings.domain.requests import BookingRequest, BookingType

BOOKING_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_code(length: int = 6) -> str:
    """Short code shown to players and checked at the venue"""
    return ''.join(secrets.choice(BOOKING_CODE_ALPHABET) for _ in range(length))


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (payment succeeded or venue approved)
    - PENDING -> REJECTED (venue declined)
    - PENDING -> FAILED (payment failed)
    - CONFIRMED -> CHECKED_IN (players arrived)
    - CONFIRMED / CHECKED_IN -> COMPLETED (check-out)
    - any non-terminal -> CANCELLED_BY_USER / CANCELLED_BY_VENUE / CANCELLED_BY_ADMIN
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CHECKED_IN = 'checked_in'
    COMPLETED = 'completed'
    CANCELLED_BY_USER = 'cancelled_by_user'
    CANCELLED_BY_VENUE = 'cancelled_by_venue'
    CANCELLED_BY_ADMIN = 'cancelled_by_admin'
    REJECTED = 'rejected'
    FAILED = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def occupies_calendar(self) -> bool:
        return self not in NON_OCCUPYING_STATUSES


NON_OCCUPYING_STATUSES = frozenset({
    BookingStatus.CANCELLED_BY_USER,
    BookingStatus.CANCELLED_BY_VENUE,
    BookingStatus.CANCELLED_BY_ADMIN,
    BookingStatus.REJECTED,
    BookingStatus.FAILED,
})

TERMINAL_STATUSES = NON_OCCUPYING_STATUSES | {BookingStatus.COMPLETED}


class PaymentStatus(Enum):
    PENDING = 'pending'
    PROCESSING = 'processing'
    PAID = 'paid'
    PARTIALLY_REFUNDED = 'partially_refunded'
    FULLY_REFUNDED = 'fully_refunded'
    FAILED = 'failed'


# Statuses a payment notification may move to, and where from
PAYMENT_NOTIFICATION_SOURCES = {
    PaymentStatus.PROCESSING: {PaymentStatus.PENDING},
    PaymentStatus.PAID: {PaymentStatus.PENDING, PaymentStatus.PROCESSING},
    PaymentStatus.FAILED: {PaymentStatus.PENDING, PaymentStatus.PROCESSING},
}

REFUNDABLE_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED})


class CancellationActor(Enum):
    USER = 'user'
    VENUE = 'venue'
    ADMIN = 'admin'

    @property
    def status(self) -> BookingStatus:
        return {
            CancellationActor.USER: BookingStatus.CANCELLED_BY_USER,
            CancellationActor.VENUE: BookingStatus.CANCELLED_BY_VENUE,
            CancellationActor.ADMIN: BookingStatus.CANCELLED_BY_ADMIN,
        }[self]


class RefundReason(Enum):
    CANCELLATION = 'cancellation'
    DUPLICATE = 'duplicate'
    FRAUDULENT = 'fraudulent'
    REQUESTED_BY_CUSTOMER = 'requested_by_customer'
    OTHER = 'other'


@dataclass(frozen=True)
class Price(ValueObject):
    """Price breakdown; total = base + taxes + fees - discounts"""
    base_amount: Money
    taxes: Money
    fees: Money
    discounts: Money

    def __post_init__(self):
        currencies = {m.currency for m in (self.base_amount, self.taxes, self.fees, self.discounts)}
        if len(currencies) != 1:
            raise ValueError(f"Price components use mixed currencies: {sorted(currencies)}")
        subtotal = self.base_amount + self.taxes + self.fees
        if self.discounts.amount > subtotal.amount:
            raise ValueError(f"Discounts {self.discounts} exceed subtotal {subtotal}")

    @classmethod
    def from_base(cls, base_amount: Money) -> 'Price':
        zero = Money.zero(base_amount.currency)
        return cls(base_amount=base_amount, taxes=zero, fees=zero, discounts=zero)

    @property
    def total_amount(self) -> Money:
        return self.base_amount + self.taxes + self.fees - self.discounts

    @property
    def currency(self) -> str:
        return self.base_amount.currency


@dataclass(frozen=True)
class Refund(ValueObject):
    amount: Money
    reason: RefundReason = RefundReason.CANCELLATION
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class RecurringLink:
    """References between a recurring parent and its children; never ownership"""
    parent_booking_id: Optional[UUID] = None
    child_booking_ids: List[UUID] = field(default_factory=list)


IDENTITY_FIELDS = frozenset({
    'id', 'venue_id', 'user_id', 'date', 'start_time', 'end_time', 'booking_code',
})


@dataclass(kw_only=True, eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Key invariants:
    - Identity fields (id, venue, user, date, window, code) never change
    - Terminal statuses admit no further status transitions; only refund
      bookkeeping and payment notifications are still recorded
    - Only non-cancelled, non-rejected, non-failed bookings occupy the calendar
    """

    venue_id: str
    user_id: str
    date: str
    start_time: str
    end_time: str
    booking_code: str
    price: Price
    total_players: int = 1
    booking_type: BookingType = BookingType.FULL_VENUE
    court_number: Optional[str] = None
    notes: str = ''

    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    refunds: List[Refund] = field(default_factory=list)

    is_recurring: bool = False
    recurring_link: Optional[RecurringLink] = None

    status_reason: str = ''
    cancellation_reason: str = ''
    cancelled_by: Optional[CancellationActor] = None

    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def __post_init__(self):
        # Validates format and ordering of the window
        TimeWindow(self.start_time, self.end_time)
        if self.total_players < 1:
            raise ValueError("Total players must be at least 1")

    def __setattr__(self, name, value):
        if name in IDENTITY_FIELDS and name in self.__dict__:
            raise AttributeError(f"Booking.{name} cannot change once set")
        super().__setattr__(name, value)

    @classmethod
    def create(
        cls,
        request: BookingRequest,
        user_id: str,
        price: Price,
        booking_code: str,
        parent_booking_id: Optional[UUID] = None,
    ) -> 'Booking':
        """New PENDING booking for an admitted request; emits BookingCreated"""
        link = None
        if request.is_recurring or parent_booking_id is not None:
            link = RecurringLink(parent_booking_id=parent_booking_id)

        booking = cls(
            venue_id=request.venue_id,
            user_id=user_id,
            date=request.date,
            start_time=request.start_time,
            end_time=request.end_time,
            booking_code=booking_code,
            price=price,
            total_players=request.total_players,
            booking_type=request.booking_type,
            court_number=request.court_number,
            notes=request.notes,
            is_recurring=request.is_recurring or parent_booking_id is not None,
            recurring_link=link,
        )
        booking.add_event(events.BookingCreated(
            aggregate_id=booking.id,
            booking_id=booking.id,
            venue_id=booking.venue_id,
            user_id=user_id,
            date=booking.date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            total_price=price.total_amount,
            parent_booking_id=parent_booking_id,
        ))
        return booking

    # ----- derived state -----

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.window.duration_minutes

    @property
    def occupies_calendar(self) -> bool:
        return self.status.occupies_calendar

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def total_refunded(self) -> Money:
        total = Money.zero(self.price.currency)
        for refund in self.refunds:
            total = total + refund.amount
        return total

    # ----- lifecycle -----

    def _require_status(self, action: str, *allowed: BookingStatus):
        if self.status not in allowed:
            raise InvalidTransition(
                f"Cannot {action} booking {self.booking_code} from status {self.status.value}"
            )

    def confirm(self):
        """PENDING -> CONFIRMED"""
        self._require_status('confirm', BookingStatus.PENDING)
        self.status = BookingStatus.CONFIRMED
        self.confirmed_at = utcnow()
        self.touch()
        self.add_event(events.BookingConfirmed(
            aggregate_id=self.id, booking_id=self.id, venue_id=self.venue_id,
        ))

    def reject(self, reason: str):
        """PENDING -> REJECTED"""
        self._require_status('reject', BookingStatus.PENDING)
        self.status = BookingStatus.REJECTED
        self.status_reason = reason
        self.touch()
        self.add_event(events.BookingRejected(
            aggregate_id=self.id, booking_id=self.id, venue_id=self.venue_id, reason=reason,
        ))

    def fail(self, reason: str):
        """PENDING -> FAILED"""
        self._require_status('fail', BookingStatus.PENDING)
        self.status = BookingStatus.FAILED
        self.status_reason = reason
        self.touch()
        self.add_event(events.BookingFailed(
            aggregate_id=self.id, booking_id=self.id, venue_id=self.venue_id, reason=reason,
        ))

    def check_in(self):
        """CONFIRMED -> CHECKED_IN"""
        self._require_status('check in', BookingStatus.CONFIRMED)
        self.status = BookingStatus.CHECKED_IN
        self.checked_in_at = utcnow()
        self.touch()
        self.add_event(events.BookingCheckedIn(
            aggregate_id=self.id, booking_id=self.id, venue_id=self.venue_id,
        ))

    def check_out(self):
        """CONFIRMED / CHECKED_IN -> COMPLETED"""
        self._require_status('check out', BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)
        self.status = BookingStatus.COMPLETED
        self.checked_out_at = utcnow()
        self.touch()
        self.add_event(events.BookingCompleted(
            aggregate_id=self.id, booking_id=self.id, venue_id=self.venue_id, user_id=self.user_id,
        ))

    def cancel(self, reason: str, actor: CancellationActor):
        """
        Cancel booking

        Allowed from any non-terminal status. The actor decides which
        CANCELLED_* variant is recorded; the timestamp feeds refund policy.
        """
        if not reason or not reason.strip():
            raise InvalidTransition("Cancellation requires a reason")
        try:
            actor = CancellationActor(actor)
        except ValueError:
            raise ValidationError(f"Unknown cancellation actor {actor!r}") from None
        if self.is_terminal:
            raise InvalidTransition(
                f"Cannot cancel booking {self.booking_code} with status {self.status.value}"
            )

        old_status = self.status
        self.status = actor.status
        self.cancellation_reason = reason
        self.cancelled_by = actor
        self.cancelled_at = utcnow()
        self.touch()
        self.add_event(events.BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            venue_id=self.venue_id,
            cancelled_by=actor.value,
            reason=reason,
            old_status=old_status.value,
        ))

    # ----- payment -----

    def apply_payment_status(self, new_status: PaymentStatus, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """
        Apply a payment notification

        Returns False when the notification repeats the current status.
        PAID confirms a PENDING booking and FAILED fails it; on any other
        booking status only the payment sub-state changes.
        """
        new_status = PaymentStatus(new_status)
        if new_status == self.payment_status:
            return False

        sources = PAYMENT_NOTIFICATION_SOURCES.get(new_status)
        if sources is None:
            raise InvalidTransition(f"Payment status {new_status.value} is only reached through refunds")
        if self.payment_status not in sources:
            raise InvalidTransition(
                f"Cannot move payment of {self.booking_code} "
                f"from {self.payment_status.value} to {new_status.value}"
            )

        old_status = self.payment_status
        self.payment_status = new_status
        self.touch()
        self.add_event(events.PaymentStatusChanged(
            aggregate_id=self.id,
            booking_id=self.id,
            old_status=old_status.value,
            new_status=new_status.value,
            metadata=dict(metadata or {}),
        ))

        if self.status == BookingStatus.PENDING:
            if new_status == PaymentStatus.PAID:
                self.confirm()
            elif new_status == PaymentStatus.FAILED:
                self.fail("Payment failed")
        return True

    def record_refund(self, amount: Money, reason: RefundReason = RefundReason.CANCELLATION) -> Refund:
        """
        Record a refund against the booking's payment

        Cumulative refunds reaching the total mark the payment fully
        refunded; anything less is partial.
        """
        if self.payment_status not in REFUNDABLE_PAYMENT_STATUSES:
            raise InvalidTransition(
                f"Cannot refund booking {self.booking_code} with payment status {self.payment_status.value}"
            )
        if amount.currency != self.price.currency:
            raise InvalidTransition(
                f"Refund currency {amount.currency} does not match booking currency {self.price.currency}"
            )
        if amount.amount <= 0:
            raise InvalidTransition("Refund amount must be positive")

        refund = Refund(amount=amount, reason=RefundReason(reason))
        self.refunds.append(refund)

        old_status = self.payment_status
        total = self.total_refunded
        if total.amount >= self.price.total_amount.amount:
            self.payment_status = PaymentStatus.FULLY_REFUNDED
        else:
            self.payment_status = PaymentStatus.PARTIALLY_REFUNDED
        self.touch()

        self.add_event(events.RefundRecorded(
            aggregate_id=self.id,
            booking_id=self.id,
            refund_id=refund.id,
            amount=amount,
            total_refunded=total,
            payment_status=self.payment_status.value,
        ))
        if old_status != self.payment_status:
            self.add_event(events.PaymentStatusChanged(
                aggregate_id=self.id,
                booking_id=self.id,
                old_status=old_status.value,
                new_status=self.payment_status.value,
            ))
        return refund

    # ----- recurrence -----

    def link_children(self, child_ids: List[UUID]):
        if self.recurring_link is None:
            self.recurring_link = RecurringLink()
        self.recurring_link.child_booking_ids.extend(child_ids)
        self.touch()

    @property
    def parent_booking_id(self) -> Optional[UUID]:
        return self.recurring_link.parent_booking_id if self.recurring_link else None

    @property
    def child_booking_ids(self) -> List[UUID]:
        return list(self.recurring_link.child_booking_ids) if self.recurring_link else []

    def mutable_fields(self) -> Dict[str, Any]:
        """Everything a status update has to persist alongside the status"""
        return {
            'payment_status': self.payment_status,
            'refunds': list(self.refunds),
            'child_booking_ids': self.child_booking_ids,
            'status_reason': self.status_reason,
            'cancellation_reason': self.cancellation_reason,
            'cancelled_by': self.cancelled_by,
            'confirmed_at': self.confirmed_at,
            'checked_in_at': self.checked_in_at,
            'checked_out_at': self.checked_out_at,
            'cancelled_at': self.cancelled_at,
            'updated_at': self.updated_at,
        }

    def __str__(self):
        return f"Booking {self.booking_code} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, code={self.booking_code}, venue={self.venue_id}, "
            f"date={self.date}, window={self.start_time}-{self.end_time}, status={self.status.value})"
        )
