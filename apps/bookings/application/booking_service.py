"""
Booking Service

Entry point for whatever request layer fronts the engine. Holds its
collaborators explicitly (gateway, message bus, locks, unit of work
factory) and routes every use case through the message bus.

Usage:
    service = BookingService(InMemoryPersistenceGateway())
    result = service.create_booking(request, user_id="u-1")
    if result.admitted:
        service.on_payment_result(result.booking.id, PaymentStatus.PAID)
"""

from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from shared.application.message_bus import MessageBus
from shared.application.uow import EventPublishingUnitOfWork
from shared.domain.value_objects import Money

from apps.bookings.application.command_handlers import (
    AdmissionPipeline,
    CancelBookingCommand,
    CancelBookingHandler,
    CheckInBookingCommand,
    CheckInBookingHandler,
    CheckOutBookingCommand,
    CheckOutBookingHandler,
    ConfirmBookingCommand,
    ConfirmBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    PaymentResultCommand,
    PaymentResultHandler,
    RecordRefundCommand,
    RecordRefundHandler,
    RejectBookingCommand,
    RejectBookingHandler,
    UnitOfWorkFactory,
)
from apps.bookings.application.gateway import PersistenceGateway
from apps.bookings.application.locks import KeyedLock
from apps.bookings.application.results import AdmissionResult, RecurringAdmissionResult
from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    CancellationActor,
    PaymentStatus,
    RefundReason,
)
from apps.bookings.domain.exceptions import ValidationError
from apps.bookings.domain.recurrence import DEFAULT_MAX_OCCURRENCES, RecurrenceExpander
from apps.bookings.domain.requests import BookingRequest


class BookingService:

    def __init__(
        self,
        gateway: PersistenceGateway,
        bus: Optional[MessageBus] = None,
        uow_factory: UnitOfWorkFactory = EventPublishingUnitOfWork,
        locks: Optional[KeyedLock] = None,
        max_attempts: int = 3,
        recurrence_workers: int = 4,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        code_length: int = 6,
    ):
        self.gateway = gateway
        self.bus = bus or MessageBus()
        self.locks = locks or KeyedLock()
        self.pipeline = AdmissionPipeline(
            gateway,
            self.bus,
            uow_factory,
            self.locks,
            max_attempts=max_attempts,
            code_length=code_length,
        )

        lifecycle = (gateway, self.bus, uow_factory, self.locks, max_attempts)
        handlers = {
            CreateBookingCommand: CreateBookingHandler(
                self.pipeline, RecurrenceExpander(max_occurrences), workers=recurrence_workers,
            ),
            ConfirmBookingCommand: ConfirmBookingHandler(*lifecycle),
            RejectBookingCommand: RejectBookingHandler(*lifecycle),
            CancelBookingCommand: CancelBookingHandler(*lifecycle),
            CheckInBookingCommand: CheckInBookingHandler(*lifecycle),
            CheckOutBookingCommand: CheckOutBookingHandler(*lifecycle),
            PaymentResultCommand: PaymentResultHandler(*lifecycle),
            RecordRefundCommand: RecordRefundHandler(*lifecycle),
        }
        for command_type, handler in handlers.items():
            self.bus.register_command_handler(command_type, handler.handle)

    # ----- admission -----

    def create_booking(
        self, request: BookingRequest, user_id: str,
    ) -> Union[AdmissionResult, RecurringAdmissionResult]:
        return self.bus.handle_command(CreateBookingCommand(request=request, user_id=user_id))

    def check_availability(self, venue_id: str, date: str, start_time: str, end_time: str) -> bool:
        """Calendar and conflict checks for a window, without booking it"""
        request = BookingRequest(venue_id=venue_id, date=date, start_time=start_time, end_time=end_time)
        return self.pipeline.is_available(request)

    # ----- lifecycle -----

    def confirm(self, booking_id: UUID) -> Booking:
        return self.bus.handle_command(ConfirmBookingCommand(booking_id))

    def reject(self, booking_id: UUID, reason: str) -> Booking:
        return self.bus.handle_command(RejectBookingCommand(booking_id, reason))

    def cancel(self, booking_id: UUID, reason: str, cancelled_by: Union[CancellationActor, str]) -> Booking:
        return self.bus.handle_command(CancelBookingCommand(booking_id, reason, cancelled_by))

    def check_in(self, booking_id: UUID) -> Booking:
        return self.bus.handle_command(CheckInBookingCommand(booking_id))

    def check_out(self, booking_id: UUID) -> Booking:
        return self.bus.handle_command(CheckOutBookingCommand(booking_id))

    # ----- payment collaborator -----

    def on_payment_result(
        self,
        booking_id: UUID,
        status: Union[PaymentStatus, str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Booking:
        """Raises ValidationError for a status string the engine does not know"""
        try:
            status = PaymentStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown payment status {status!r}") from None
        return self.bus.handle_command(PaymentResultCommand(booking_id, status, dict(metadata or {})))

    def record_refund(
        self,
        booking_id: UUID,
        amount: Money,
        reason: Union[RefundReason, str] = RefundReason.CANCELLATION,
    ) -> Booking:
        return self.bus.handle_command(RecordRefundCommand(booking_id, amount, RefundReason(reason)))

    # ----- queries -----

    def get_booking(self, booking_id: UUID) -> Booking:
        return self.gateway.get_booking(booking_id)

    def get_booking_by_code(self, booking_code: str) -> Booking:
        return self.gateway.get_booking_by_code(booking_code.upper())

    def list_user_bookings(self, user_id: str, status: Optional[BookingStatus] = None, limit: int = 20) -> List[Booking]:
        return self.gateway.list_user_bookings(user_id, status=status, limit=limit)

    def list_venue_bookings(
        self,
        venue_id: str,
        date: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 20,
    ) -> List[Booking]:
        return self.gateway.list_venue_bookings(venue_id, date=date, status=status, limit=limit)
