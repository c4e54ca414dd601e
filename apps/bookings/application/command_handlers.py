"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations inside a unit of work.

Commands:
- CreateBookingCommand: Admit a booking, expanding recurring requests
- ConfirmBookingCommand: Venue approves a pending booking
- RejectBookingCommand: Venue declines a pending booking
- CancelBookingCommand: Cancel on behalf of user, venue or admin
- CheckInBookingCommand: Players arrived
- CheckOutBookingCommand: Players left, booking completed
- PaymentResultCommand: Payment collaborator reports a payment status
- RecordRefundCommand: Payment collaborator reports a refund
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID
import logging

from shared.application.message_bus import MessageBus
from shared.application.uow import AbstractUnitOfWork
from shared.domain.value_objects import Money

from apps.bookings.application.gateway import PersistenceGateway
from apps.bookings.application.locks import KeyedLock
from apps.bookings.application.results import (
    AdmissionOutcome,
    AdmissionResult,
    RecurringAdmissionResult,
    SkippedDate,
)
from apps.bookings.domain.conflicts import ConflictDetector
from apps.bookings.domain.entities import (
    Booking,
    CancellationActor,
    PaymentStatus,
    RefundReason,
    generate_booking_code,
)
from apps.bookings.domain.events import RecurringSeriesCreated
from apps.bookings.domain.exceptions import AdmissionFailed, StorageError, WriteConflict
from apps.bookings.domain.pricing import quote_price
from apps.bookings.domain.recurrence import RecurrenceExpander
from apps.bookings.domain.requests import BookingRequest
from apps.venues.domain.availability import AvailabilityEngine
from apps.venues.domain.entities import Venue

logger = logging.getLogger(__name__)

UnitOfWorkFactory = Callable[[MessageBus], AbstractUnitOfWork]


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to admit a new booking

    This is the primary entry point for creating bookings.
    """
    request: BookingRequest
    user_id: str


@dataclass
class ConfirmBookingCommand:
    booking_id: UUID


@dataclass
class RejectBookingCommand:
    booking_id: UUID
    reason: str


@dataclass
class CancelBookingCommand:
    booking_id: UUID
    reason: str
    cancelled_by: CancellationActor


@dataclass
class CheckInBookingCommand:
    booking_id: UUID


@dataclass
class CheckOutBookingCommand:
    booking_id: UUID


@dataclass
class PaymentResultCommand:
    """Payment status notification; metadata stays opaque to the engine"""
    booking_id: UUID
    status: PaymentStatus
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RecordRefundCommand:
    booking_id: UUID
    amount: Money
    reason: RefundReason = RefundReason.CANCELLATION


# ===== Admission =====

class AdmissionPipeline:
    """
    Calendar check -> conflict check -> conditional create

    Strategy against double booking:
    1. Calendar check against the venue's template and exceptions
    2. Hold the (venue_id, date) lock for the rest of the attempt
    3. Fresh read of the day's bookings, ConflictDetector decides
    4. Conditional create: the store refuses the write if an overlapping
       active booking appeared anyway (another process) -> WriteConflict
    5. WriteConflict -> retry from step 2, at most `max_attempts` times,
       then AdmissionFailed
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        bus: MessageBus,
        uow_factory: UnitOfWorkFactory,
        locks: KeyedLock,
        max_attempts: int = 3,
        code_length: int = 6,
        engine: Optional[AvailabilityEngine] = None,
        detector: Optional[ConflictDetector] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.gateway = gateway
        self.bus = bus
        self.uow_factory = uow_factory
        self.locks = locks
        self.max_attempts = max_attempts
        self.code_length = code_length
        self.engine = engine or AvailabilityEngine()
        self.detector = detector or ConflictDetector()

    def is_available(self, request: BookingRequest) -> bool:
        """Both checks without writing anything"""
        venue = self.gateway.get_venue(request.venue_id)
        if not self._calendar_allows(venue, request):
            return False
        existing = self.gateway.list_active_bookings(request.venue_id, request.date)
        return not self.detector.has_conflict(existing, request.start_time, request.end_time)

    def admit(
        self,
        request: BookingRequest,
        user_id: str,
        parent_booking_id: Optional[UUID] = None,
        venue: Optional[Venue] = None,
    ) -> AdmissionResult:
        """
        Admit one request

        Returns an AdmissionResult for admitted and denied requests alike.

        Raises:
            VenueNotFound: unknown venue
            AdmissionFailed: every attempt lost a write race
            StorageError: the store is unavailable
        """
        if venue is None:
            venue = self.gateway.get_venue(request.venue_id)

        if not self._calendar_allows(venue, request):
            logger.info(
                "Calendar denies %s on %s %s-%s",
                request.venue_id, request.date, request.start_time, request.end_time,
            )
            return AdmissionResult(request, AdmissionOutcome.CALENDAR_UNAVAILABLE)

        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.locks.hold(request.admission_key), self.uow_factory(self.bus) as uow:
                    result = self._attempt(venue, request, user_id, parent_booking_id)
                    if result.booking is not None:
                        uow.collect_events(result.booking)
                    return result
            except WriteConflict as e:
                logger.warning(
                    "Write conflict admitting %s on %s %s-%s (attempt %d/%d): %s",
                    request.venue_id, request.date, request.start_time, request.end_time,
                    attempt, self.max_attempts, e,
                )

        logger.error(
            "Giving up on %s on %s %s-%s after %d attempts",
            request.venue_id, request.date, request.start_time, request.end_time, self.max_attempts,
        )
        raise AdmissionFailed(request.venue_id, request.date, self.max_attempts)

    def _calendar_allows(self, venue: Venue, request: BookingRequest) -> bool:
        return self.engine.is_calendar_available(
            venue.calendar, request.date, request.start_time, request.end_time,
        )

    def _attempt(
        self,
        venue: Venue,
        request: BookingRequest,
        user_id: str,
        parent_booking_id: Optional[UUID],
    ) -> AdmissionResult:
        existing = self.gateway.list_active_bookings(request.venue_id, request.date)
        conflict = self.detector.find_conflict(existing, request.start_time, request.end_time)
        if conflict is not None:
            logger.info(
                "%s on %s %s-%s conflicts with booking %s",
                request.venue_id, request.date, request.start_time, request.end_time,
                conflict.booking_code,
            )
            return AdmissionResult(
                request, AdmissionOutcome.CONFLICT, conflicting_booking_id=conflict.id,
            )

        slot = self.engine.matching_slot(
            venue.calendar, request.date, request.start_time, request.end_time,
        )
        booking = Booking.create(
            request,
            user_id=user_id,
            price=quote_price(venue.hourly_rate, request.window, slot),
            booking_code=generate_booking_code(self.code_length),
            parent_booking_id=parent_booking_id,
        )
        self.gateway.create_booking(booking, conditional=True)

        logger.info(
            "Admitted booking %s for %s on %s %s-%s",
            booking.booking_code, request.venue_id, request.date,
            request.start_time, request.end_time,
        )
        return AdmissionResult(request, AdmissionOutcome.ADMITTED, booking=booking)


class CreateBookingHandler:
    """
    Handler for CreateBooking command

    A recurring request is expanded before anything is written, so a rule
    that is too long is rejected without leaving a parent behind. The
    parent is admitted first; each child is then admitted on its own and
    either joins the series or is reported as skipped.
    """

    def __init__(
        self,
        pipeline: AdmissionPipeline,
        expander: RecurrenceExpander,
        workers: int = 4,
    ):
        self.pipeline = pipeline
        self.expander = expander
        self.workers = workers

    @property
    def gateway(self) -> PersistenceGateway:
        return self.pipeline.gateway

    def handle(self, command: CreateBookingCommand) -> Union[AdmissionResult, RecurringAdmissionResult]:
        request = command.request
        logger.info(
            "Creating booking for venue %s, user %s, %s %s-%s%s",
            request.venue_id, command.user_id, request.date, request.start_time,
            request.end_time, " (recurring)" if request.is_recurring else "",
        )

        if not request.is_recurring:
            return self.pipeline.admit(request, command.user_id)

        child_requests = self.expander.expand(request, request.recurrence_rule)
        venue = self.gateway.get_venue(request.venue_id)
        parent = self.pipeline.admit(request, command.user_id, venue=venue)
        if not parent.admitted:
            return RecurringAdmissionResult(parent=parent)

        outcomes = self._admit_children(child_requests, command.user_id, parent.booking.id, venue)
        children = [result for result, _ in outcomes if result is not None and result.admitted]
        skipped = [skip for _, skip in outcomes if skip is not None]

        parent_booking = self._link_series(parent.booking.id, children, skipped)
        if skipped:
            logger.warning(
                "Recurring booking %s: %d of %d dates skipped (%s)",
                parent_booking.booking_code, len(skipped), len(child_requests),
                ", ".join(f"{s.date}: {s.reason}" for s in skipped),
            )
        return RecurringAdmissionResult(
            parent=replace(parent, booking=parent_booking),
            children=children,
            skipped=skipped,
        )

    def _admit_child(
        self,
        request: BookingRequest,
        user_id: str,
        parent_id: UUID,
        venue: Venue,
    ) -> Tuple[Optional[AdmissionResult], Optional[SkippedDate]]:
        try:
            result = self.pipeline.admit(request, user_id, parent_booking_id=parent_id, venue=venue)
        except AdmissionFailed as e:
            return None, SkippedDate(request.date, f"admission_failed: {e}")
        except StorageError as e:
            logger.error("Storage error admitting child on %s: %s", request.date, e)
            return None, SkippedDate(request.date, f"storage_error: {e}")
        if result.admitted:
            return result, None
        return result, SkippedDate(request.date, result.outcome.value)

    def _admit_children(self, child_requests, user_id, parent_id, venue):
        if self.workers <= 1 or len(child_requests) <= 1:
            return [self._admit_child(r, user_id, parent_id, venue) for r in child_requests]

        def run(request):
            try:
                return self._admit_child(request, user_id, parent_id, venue)
            finally:
                self.gateway.release_thread_resources()

        with ThreadPoolExecutor(max_workers=min(self.workers, len(child_requests))) as executor:
            # map keeps expansion order
            return list(executor.map(run, child_requests))

    def _link_series(self, parent_id: UUID, children: List[AdmissionResult], skipped: List[SkippedDate]) -> Booking:
        for attempt in range(1, self.pipeline.max_attempts + 1):
            try:
                return self._link_series_once(parent_id, children, skipped)
            except WriteConflict:
                if attempt == self.pipeline.max_attempts:
                    raise
                logger.info("Series parent %s changed while linking children (attempt %d/%d), re-reading",
                            parent_id, attempt, self.pipeline.max_attempts)

    def _link_series_once(self, parent_id: UUID, children: List[AdmissionResult], skipped: List[SkippedDate]) -> Booking:
        pipeline = self.pipeline
        with pipeline.locks.hold(('booking', parent_id)), pipeline.uow_factory(pipeline.bus) as uow:
            parent = self.gateway.get_booking_for_update(parent_id)
            read_at = parent.updated_at
            child_ids = [child.booking.id for child in children]
            if child_ids:
                parent.link_children(child_ids)
                self.gateway.save_booking(parent, expected_updated_at=read_at)
            parent.add_event(RecurringSeriesCreated(
                aggregate_id=parent.id,
                parent_booking_id=parent.id,
                child_booking_ids=child_ids,
                skipped_dates=[s.date for s in skipped],
            ))
            uow.collect_events(parent)
        return parent


# ===== Lifecycle =====

class BookingTransitionHandler:
    """
    Base for handlers that load one booking, apply a transition and save it

    The keyed lock serializes transitions on the same booking inside this
    process. Across processes the booking is read for update and saved
    only if its updated_at has not moved since the read; a WriteConflict
    means another process got there first, so the booking is re-read and
    the transition applied to the fresh state, at most `max_attempts`
    times.
    """

    action = 'update'

    def __init__(
        self,
        gateway: PersistenceGateway,
        bus: MessageBus,
        uow_factory: UnitOfWorkFactory,
        locks: KeyedLock,
        max_attempts: int = 3,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.gateway = gateway
        self.bus = bus
        self.uow_factory = uow_factory
        self.locks = locks
        self.max_attempts = max_attempts

    def apply(self, booking: Booking, command) -> bool:
        """Mutate the booking; return False when nothing changed"""
        raise NotImplementedError

    def _attempt(self, command) -> Tuple[Booking, Any]:
        with self.locks.hold(('booking', command.booking_id)), self.uow_factory(self.bus) as uow:
            booking = self.gateway.get_booking_for_update(command.booking_id)
            read_at = booking.updated_at
            changed = self.apply(booking, command)
            if changed is not False:
                self.gateway.save_booking(booking, expected_updated_at=read_at)
                uow.collect_events(booking)
        return booking, changed

    def handle(self, command) -> Booking:
        for attempt in range(1, self.max_attempts + 1):
            try:
                booking, changed = self._attempt(command)
                break
            except WriteConflict:
                if attempt == self.max_attempts:
                    logger.warning("Booking %s: %s kept losing to concurrent writers after %d attempts",
                                   command.booking_id, self.action, attempt)
                    raise
                logger.info("Booking %s changed during %s (attempt %d/%d), re-reading",
                            command.booking_id, self.action, attempt, self.max_attempts)

        if changed is False:
            logger.info("Booking %s: %s was a no-op", booking.booking_code, self.action)
        else:
            logger.info("Booking %s: %s -> %s/%s", booking.booking_code, self.action,
                        booking.status.value, booking.payment_status.value)
        return booking


class ConfirmBookingHandler(BookingTransitionHandler):
    action = 'confirm'

    def apply(self, booking, command: ConfirmBookingCommand):
        booking.confirm()


class RejectBookingHandler(BookingTransitionHandler):
    action = 'reject'

    def apply(self, booking, command: RejectBookingCommand):
        booking.reject(command.reason)


class CancelBookingHandler(BookingTransitionHandler):
    action = 'cancel'

    def apply(self, booking, command: CancelBookingCommand):
        booking.cancel(command.reason, command.cancelled_by)


class CheckInBookingHandler(BookingTransitionHandler):
    action = 'check in'

    def apply(self, booking, command: CheckInBookingCommand):
        booking.check_in()


class CheckOutBookingHandler(BookingTransitionHandler):
    action = 'check out'

    def apply(self, booking, command: CheckOutBookingCommand):
        booking.check_out()


class PaymentResultHandler(BookingTransitionHandler):
    action = 'payment result'

    def apply(self, booking, command: PaymentResultCommand):
        return booking.apply_payment_status(command.status, command.metadata)


class RecordRefundHandler(BookingTransitionHandler):
    action = 'refund'

    def apply(self, booking, command: RecordRefundCommand):
        booking.record_refund(command.amount, command.reason)
