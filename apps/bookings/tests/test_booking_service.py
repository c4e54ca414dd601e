from decimal import Decimal
from uuid import uuid4

import pytest

from shared.domain.value_objects import Money

from apps.bookings.domain import events
from apps.bookings.domain.entities import BookingStatus, CancellationActor, PaymentStatus, RefundReason
from apps.bookings.application.booking_service import BookingService
from apps.bookings.domain.exceptions import BookingNotFound, InvalidTransition, ValidationError, WriteConflict
from apps.bookings.domain.requests import BookingRequest
from apps.bookings.infrastructure.memory import InMemoryPersistenceGateway


def admit(service, date="2024-01-01", start="10:00", end="11:00", user_id="user-1"):
    request = BookingRequest(venue_id="venue-1", date=date, start_time=start, end_time=end)
    return service.create_booking(request, user_id=user_id).booking


def test_full_lifecycle(service):
    booking = admit(service)

    service.confirm(booking.id)
    service.check_in(booking.id)
    done = service.check_out(booking.id)

    assert done.status == BookingStatus.COMPLETED
    assert service.get_booking(booking.id).status == BookingStatus.COMPLETED


def test_check_in_on_pending_is_rejected(service):
    booking = admit(service)

    with pytest.raises(InvalidTransition):
        service.check_in(booking.id)
    assert service.get_booking(booking.id).status == BookingStatus.PENDING


def test_reject_and_cancel_persist_reasons(service):
    rejected = service.reject(admit(service, start="10:00", end="11:00").id, "maintenance")
    cancelled = service.cancel(admit(service, start="12:00", end="13:00").id, "rain", "venue")

    assert service.get_booking(rejected.id).status_reason == "maintenance"
    stored = service.get_booking(cancelled.id)
    assert stored.status == BookingStatus.CANCELLED_BY_VENUE
    assert stored.cancelled_by == CancellationActor.VENUE
    assert stored.cancellation_reason == "rain"


def test_payment_result_confirms_and_is_idempotent(service, bus):
    changes = []
    bus.subscribe(events.PaymentStatusChanged, changes.append)
    booking = admit(service)

    service.on_payment_result(booking.id, "paid", {"gateway": "razorpay", "ref": "pay_1"})
    again = service.on_payment_result(booking.id, PaymentStatus.PAID)

    assert again.status == BookingStatus.CONFIRMED
    assert again.payment_status == PaymentStatus.PAID
    assert len(changes) == 1
    assert changes[0].metadata == {"gateway": "razorpay", "ref": "pay_1"}


def test_failed_payment_releases_window(service):
    booking = admit(service)
    service.on_payment_result(booking.id, PaymentStatus.FAILED)

    assert service.get_booking(booking.id).status == BookingStatus.FAILED
    assert admit(service, user_id="user-2") is not None


def test_refunds_are_stored(service):
    booking = admit(service)
    service.on_payment_result(booking.id, PaymentStatus.PAID)

    service.record_refund(booking.id, Money("999.99", "INR"))
    partial = service.get_booking(booking.id)
    assert partial.payment_status == PaymentStatus.PARTIALLY_REFUNDED

    service.record_refund(booking.id, Money("0.01", "INR"), RefundReason.OTHER)
    full = service.get_booking(booking.id)
    assert full.payment_status == PaymentStatus.FULLY_REFUNDED
    assert full.total_refunded == Money(Decimal("1000.00"), "INR")
    assert len(full.refunds) == 2


def test_unknown_booking(service):
    with pytest.raises(BookingNotFound):
        service.confirm(uuid4())
    with pytest.raises(BookingNotFound):
        service.get_booking_by_code("NOPE00")


def test_lookup_by_code_is_case_insensitive(service):
    booking = admit(service)
    assert service.get_booking_by_code(booking.booking_code.lower()).id == booking.id


def test_user_bookings_newest_first(service):
    admit(service, date="2024-01-01", start="10:00", end="11:00")
    admit(service, date="2024-01-03", start="10:00", end="11:00")
    admit(service, date="2024-01-03", start="15:00", end="16:00")
    admit(service, date="2024-01-02", user_id="someone-else")

    listed = service.list_user_bookings("user-1")
    assert [(b.date, b.start_time) for b in listed] == [
        ("2024-01-03", "15:00"), ("2024-01-03", "10:00"), ("2024-01-01", "10:00"),
    ]
    assert len(service.list_user_bookings("user-1", limit=1)) == 1


def test_venue_bookings_chronological_and_filtered(service):
    late = admit(service, start="15:00", end="16:00")
    early = admit(service, start="09:00", end="10:00")
    admit(service, date="2024-01-02")
    service.confirm(late.id)

    day = service.list_venue_bookings("venue-1", date="2024-01-01")
    assert [b.id for b in day] == [early.id, late.id]
    confirmed = service.list_venue_bookings("venue-1", status=BookingStatus.CONFIRMED)
    assert [b.id for b in confirmed] == [late.id]


def test_returned_bookings_are_detached(service, gateway):
    booking = admit(service)
    copy = service.get_booking(booking.id)
    copy.status = BookingStatus.CONFIRMED

    assert gateway.get_booking(booking.id).status == BookingStatus.PENDING


def test_unknown_payment_status_is_a_validation_error(service):
    booking = admit(service)

    with pytest.raises(ValidationError):
        service.on_payment_result(booking.id, "settled")
    assert service.get_booking(booking.id).payment_status == PaymentStatus.PENDING


class InterleavingGateway(InMemoryPersistenceGateway):
    """Runs `interleave` once, right after the next read-for-update returns."""

    def __init__(self, venues):
        super().__init__(venues)
        self.interleave = None

    def get_booking_for_update(self, booking_id):
        booking = super().get_booking_for_update(booking_id)
        interleave, self.interleave = self.interleave, None
        if interleave is not None:
            interleave(booking_id)
        return booking


class TestConcurrentTransitions:
    """Two services with their own lock registries stand in for two processes."""

    def test_payment_does_not_revive_a_booking_cancelled_meanwhile(self, venue):
        gateway = InterleavingGateway([venue])
        web, worker = BookingService(gateway), BookingService(gateway)
        confirmed = []
        worker.bus.subscribe(events.BookingConfirmed, confirmed.append)
        booking = admit(worker)

        gateway.interleave = lambda booking_id: web.cancel(booking_id, "changed plans", "user")
        result = worker.on_payment_result(booking.id, PaymentStatus.PAID)

        assert result.status == BookingStatus.CANCELLED_BY_USER
        assert result.payment_status == PaymentStatus.PAID
        stored = gateway.get_booking(booking.id)
        assert stored.status == BookingStatus.CANCELLED_BY_USER
        assert stored.payment_status == PaymentStatus.PAID
        assert confirmed == []
        request = BookingRequest(venue_id="venue-1", date="2024-01-01", start_time="10:00", end_time="11:00")
        assert web.create_booking(request, user_id="user-2").admitted

    def test_cancel_after_concurrent_confirm_still_applies(self, venue):
        gateway = InterleavingGateway([venue])
        web, worker = BookingService(gateway), BookingService(gateway)
        booking = admit(web)

        gateway.interleave = lambda booking_id: worker.on_payment_result(booking_id, PaymentStatus.PAID)
        cancelled = web.cancel(booking.id, "rain", "venue")

        assert cancelled.status == BookingStatus.CANCELLED_BY_VENUE
        stored = gateway.get_booking(booking.id)
        assert stored.status == BookingStatus.CANCELLED_BY_VENUE
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.confirmed_at is not None

    def test_gives_up_when_the_booking_keeps_changing(self, venue):
        class AlwaysStaleGateway(InMemoryPersistenceGateway):
            def update_booking_status(self, booking_id, status, *, expected_updated_at=None, **fields):
                if expected_updated_at is not None:
                    raise WriteConflict("changed since it was read")
                super().update_booking_status(booking_id, status, **fields)

        gateway = AlwaysStaleGateway([venue])
        service = BookingService(gateway, max_attempts=2)
        booking = admit(service)

        with pytest.raises(WriteConflict):
            service.confirm(booking.id)
        assert gateway.get_booking(booking.id).status == BookingStatus.PENDING
        assert service.locks.active_keys() == []
