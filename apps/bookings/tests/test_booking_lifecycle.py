"""Booking aggregate: status machine, payment sub-state and refunds."""

from decimal import Decimal

import pytest

from shared.domain.value_objects import Money

from apps.bookings.domain import events
from apps.bookings.domain.entities import (
    BookingStatus,
    CancellationActor,
    PaymentStatus,
    Price,
    RefundReason,
    TERMINAL_STATUSES,
)
from apps.bookings.domain.exceptions import InvalidTransition, ValidationError


def event_types(booking):
    return [type(event) for event in booking.events]


class TestStatusTransitions:

    def test_happy_path(self, make_booking):
        booking = make_booking()

        booking.confirm()
        booking.check_in()
        booking.check_out()

        assert booking.status == BookingStatus.COMPLETED
        assert booking.confirmed_at and booking.checked_in_at and booking.checked_out_at
        assert event_types(booking) == [
            events.BookingConfirmed, events.BookingCheckedIn, events.BookingCompleted,
        ]

    def test_check_out_straight_from_confirmed(self, make_booking):
        booking = make_booking(status=BookingStatus.CONFIRMED)
        booking.check_out()
        assert booking.status == BookingStatus.COMPLETED

    def test_check_in_requires_confirmation(self, make_booking):
        booking = make_booking()
        with pytest.raises(InvalidTransition):
            booking.check_in()
        assert booking.status == BookingStatus.PENDING

    def test_reject_only_pending(self, make_booking):
        booking = make_booking()
        booking.reject("court flooded")
        assert booking.status == BookingStatus.REJECTED
        assert booking.status_reason == "court flooded"

        confirmed = make_booking(status=BookingStatus.CONFIRMED)
        with pytest.raises(InvalidTransition):
            confirmed.reject("too late")

    @pytest.mark.parametrize("actor, expected", [
        (CancellationActor.USER, BookingStatus.CANCELLED_BY_USER),
        ("venue", BookingStatus.CANCELLED_BY_VENUE),
        (CancellationActor.ADMIN, BookingStatus.CANCELLED_BY_ADMIN),
    ])
    def test_cancel_records_actor(self, make_booking, actor, expected):
        booking = make_booking(status=BookingStatus.CONFIRMED)
        booking.cancel("plans changed", actor)

        assert booking.status == expected
        assert booking.cancelled_at is not None
        assert not booking.occupies_calendar
        cancelled = booking.events[-1]
        assert isinstance(cancelled, events.BookingCancelled)
        assert cancelled.old_status == "confirmed"

    def test_cancel_needs_reason(self, make_booking):
        with pytest.raises(InvalidTransition):
            make_booking().cancel("  ", CancellationActor.USER)

    def test_cancel_unknown_actor(self, make_booking):
        with pytest.raises(ValidationError):
            make_booking().cancel("reason", "robot")

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_statuses_are_final(self, make_booking, status):
        booking = make_booking(status=status)
        for action in (booking.confirm, booking.check_in, booking.check_out):
            with pytest.raises(InvalidTransition):
                action()
        with pytest.raises(InvalidTransition):
            booking.reject("no")
        with pytest.raises(InvalidTransition):
            booking.cancel("no", CancellationActor.ADMIN)
        assert booking.status == status

    def test_identity_fields_are_frozen(self, make_booking):
        booking = make_booking()
        with pytest.raises(AttributeError):
            booking.start_time = "12:00"
        with pytest.raises(AttributeError):
            booking.booking_code = "OTHER1"


class TestPayment:

    def test_paid_confirms_pending_booking(self, make_booking):
        booking = make_booking()
        assert booking.apply_payment_status(PaymentStatus.PAID, {"provider_ref": "tx-1"})

        assert booking.payment_status == PaymentStatus.PAID
        assert booking.status == BookingStatus.CONFIRMED
        changed = booking.events[0]
        assert isinstance(changed, events.PaymentStatusChanged)
        assert changed.metadata == {"provider_ref": "tx-1"}

    def test_failed_fails_pending_booking(self, make_booking):
        booking = make_booking()
        booking.apply_payment_status(PaymentStatus.PROCESSING)
        booking.apply_payment_status(PaymentStatus.FAILED)

        assert booking.status == BookingStatus.FAILED
        assert not booking.occupies_calendar

    def test_repeated_notification_is_a_no_op(self, make_booking):
        booking = make_booking()
        booking.apply_payment_status(PaymentStatus.PAID)
        booking.clear_events()

        assert booking.apply_payment_status(PaymentStatus.PAID) is False
        assert booking.events == []

    def test_paid_on_cancelled_booking_only_moves_payment(self, make_booking):
        booking = make_booking()
        booking.cancel("changed mind", CancellationActor.USER)
        booking.apply_payment_status(PaymentStatus.PAID)

        assert booking.status == BookingStatus.CANCELLED_BY_USER
        assert booking.payment_status == PaymentStatus.PAID

    def test_refund_statuses_are_not_notifications(self, make_booking):
        booking = make_booking()
        with pytest.raises(InvalidTransition):
            booking.apply_payment_status(PaymentStatus.FULLY_REFUNDED)

    def test_paid_after_failed_is_rejected(self, make_booking):
        booking = make_booking()
        booking.apply_payment_status(PaymentStatus.FAILED)
        with pytest.raises(InvalidTransition):
            booking.apply_payment_status(PaymentStatus.PAID)


class TestRefunds:

    @pytest.fixture
    def paid(self, make_booking):
        booking = make_booking(amount="1000.00")
        booking.apply_payment_status(PaymentStatus.PAID)
        booking.clear_events()
        return booking

    def test_full_refund(self, paid):
        paid.record_refund(Money("1000.00", "INR"))
        assert paid.payment_status == PaymentStatus.FULLY_REFUNDED

    def test_one_cent_short_is_partial(self, paid):
        paid.record_refund(Money("999.99", "INR"))
        assert paid.payment_status == PaymentStatus.PARTIALLY_REFUNDED

    def test_refunds_accumulate(self, paid):
        paid.record_refund(Money("400", "INR"), RefundReason.REQUESTED_BY_CUSTOMER)
        assert paid.payment_status == PaymentStatus.PARTIALLY_REFUNDED
        paid.record_refund(Money("600", "INR"))

        assert paid.payment_status == PaymentStatus.FULLY_REFUNDED
        assert paid.total_refunded == Money(Decimal("1000"), "INR")
        assert [r.reason for r in paid.refunds] == [RefundReason.REQUESTED_BY_CUSTOMER, RefundReason.CANCELLATION]

    def test_refund_allowed_after_cancellation(self, paid):
        paid.cancel("rain", CancellationActor.VENUE)
        paid.record_refund(Money("1000", "INR"))
        assert paid.payment_status == PaymentStatus.FULLY_REFUNDED

    def test_refund_events(self, paid):
        paid.record_refund(Money("100", "INR"))
        assert event_types(paid) == [events.RefundRecorded, events.PaymentStatusChanged]

    def test_unpaid_booking_cannot_be_refunded(self, make_booking):
        with pytest.raises(InvalidTransition):
            make_booking().record_refund(Money("1", "INR"))

    def test_currency_must_match(self, paid):
        with pytest.raises(InvalidTransition):
            paid.record_refund(Money("1", "USD"))


class TestPrice:

    def test_total(self):
        price = Price(
            base_amount=Money("1000", "INR"),
            taxes=Money("180", "INR"),
            fees=Money("20", "INR"),
            discounts=Money("200", "INR"),
        )
        assert price.total_amount == Money(Decimal("1000"), "INR")

    def test_discount_cannot_exceed_subtotal(self):
        with pytest.raises(ValueError):
            Price(
                base_amount=Money("10", "INR"),
                taxes=Money("0", "INR"),
                fees=Money("0", "INR"),
                discounts=Money("11", "INR"),
            )

    def test_mixed_currencies(self):
        with pytest.raises(ValueError):
            Price(
                base_amount=Money("10", "INR"),
                taxes=Money("0", "USD"),
                fees=Money("0", "INR"),
                discounts=Money("0", "INR"),
            )
