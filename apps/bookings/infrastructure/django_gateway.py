"""
Django ORM persistence gateway

Maps booking aggregates to apps.bookings.models rows. The conditional
create locks the venue row and re-checks for overlapping occupying bookings
inside the same transaction, so two processes admitting the same window
cannot both commit. Status changes read the booking row with
select_for_update and write only if updated_at is unchanged since that
read.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional
from uuid import UUID
import logging

from django.db import DatabaseError, IntegrityError, connections, transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from shared.domain.value_objects import Money

from apps.bookings.application.gateway import PersistenceGateway
from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    CancellationActor,
    PaymentStatus,
    Price,
    RecurringLink,
    Refund,
    RefundReason,
)
from apps.bookings.domain.exceptions import (
    BookingNotFound,
    StorageError,
    ValidationError,
    VenueNotFound,
    WriteConflict,
)
from apps.bookings.domain.requests import BookingType
from apps.bookings.models import Booking as BookingModel
from apps.bookings.models import Refund as RefundModel
from apps.venues.domain.entities import Venue
from apps.venues.models import Venue as VenueModel

logger = logging.getLogger(__name__)

OCCUPYING_STATUSES = [status.value for status in BookingStatus if status.occupies_calendar]


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as e:
        logger.warning("Integrity error during %s: %s", operation, e)
        raise WriteConflict(f"{operation} hit a uniqueness or integrity constraint: {e}") from e
    except DatabaseError as e:
        logger.error("Database error during %s: %s", operation, e)
        raise StorageError(f"{operation} failed: {e}") from e


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def booking_to_entity(row: BookingModel) -> Booking:
    currency = row.currency
    link = None
    if row.is_recurring:
        link = RecurringLink(
            parent_booking_id=row.parent_id,
            child_booking_ids=[UUID(str(child_id)) for child_id in row.child_booking_ids],
        )
    refunds = [
        Refund(
            amount=Money(refund.amount, refund.currency),
            reason=RefundReason(refund.reason),
            id=refund.id,
            created_at=refund.created_at,
        )
        for refund in row.refunds.all()
    ]
    return Booking(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        venue_id=row.venue_id,
        user_id=row.user_id,
        date=row.date,
        start_time=row.start_time,
        end_time=row.end_time,
        booking_code=row.booking_code,
        price=Price(
            base_amount=Money(row.base_amount, currency),
            taxes=Money(row.taxes, currency),
            fees=Money(row.fees, currency),
            discounts=Money(row.discounts, currency),
        ),
        total_players=row.total_players,
        booking_type=BookingType(row.booking_type),
        court_number=row.court_number,
        notes=row.notes,
        status=BookingStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        refunds=refunds,
        is_recurring=row.is_recurring,
        recurring_link=link,
        status_reason=row.status_reason,
        cancellation_reason=row.cancellation_reason,
        cancelled_by=CancellationActor(row.cancelled_by) if row.cancelled_by else None,
        confirmed_at=row.confirmed_at,
        checked_in_at=row.checked_in_at,
        checked_out_at=row.checked_out_at,
        cancelled_at=row.cancelled_at,
    )


def _column_values(status: BookingStatus, fields: dict) -> dict:
    """Translate mutable booking fields into model column values."""

    values = {"status": BookingStatus(status).value}
    for name, value in fields.items():
        if name == "refunds":
            continue
        if name == "payment_status":
            value = PaymentStatus(value).value
        elif name == "cancelled_by":
            value = CancellationActor(value).value if value else ""
        elif name == "child_booking_ids":
            value = [str(child_id) for child_id in value]
        values[name] = value
    return values


class DjangoPersistenceGateway(PersistenceGateway):

    def _rows(self):
        return BookingModel.objects.prefetch_related("refunds")

    # ----- venues -----

    def get_venue(self, venue_id: str) -> Venue:
        with _storage_errors("get_venue"):
            try:
                row = VenueModel.objects.get(pk=venue_id)
            except VenueModel.DoesNotExist:
                raise VenueNotFound(venue_id) from None
        try:
            return row.to_entity()
        except ValueError as e:
            raise ValidationError(f"Venue {venue_id} has an invalid calendar: {e}") from e

    # ----- bookings -----

    def list_active_bookings(self, venue_id: str, date: str) -> List[Booking]:
        with _storage_errors("list_active_bookings"):
            rows = self._rows().filter(venue_id=venue_id, date=date).order_by("start_time")
            return [booking_to_entity(row) for row in rows]

    def create_booking(self, booking: Booking, conditional: bool = True) -> UUID:
        with _storage_errors("create_booking"), transaction.atomic():
            venue_qs = _lock_queryset_if_possible(VenueModel.objects.filter(pk=booking.venue_id))
            if not venue_qs.exists():
                raise VenueNotFound(booking.venue_id)

            if conditional:
                overlapping = BookingModel.objects.filter(
                    venue_id=booking.venue_id,
                    date=booking.date,
                    status__in=OCCUPYING_STATUSES,
                ).filter(Q(start_time__lt=booking.end_time) & Q(end_time__gt=booking.start_time))
                clash = overlapping.values_list("booking_code", flat=True).first()
                if clash is not None:
                    raise WriteConflict(
                        f"{booking.venue_id} {booking.date} {booking.start_time}-{booking.end_time} "
                        f"overlaps booking {clash}"
                    )

            price = booking.price
            BookingModel.objects.create(
                id=booking.id,
                venue_id=booking.venue_id,
                user_id=booking.user_id,
                date=booking.date,
                start_time=booking.start_time,
                end_time=booking.end_time,
                total_players=booking.total_players,
                booking_type=booking.booking_type.value,
                court_number=booking.court_number,
                notes=booking.notes,
                booking_code=booking.booking_code,
                base_amount=price.base_amount.amount,
                taxes=price.taxes.amount,
                fees=price.fees.amount,
                discounts=price.discounts.amount,
                total_price=price.total_amount.amount,
                currency=price.currency,
                is_recurring=booking.is_recurring,
                parent_id=booking.parent_booking_id,
                created_at=booking.created_at,
                **_column_values(booking.status, booking.mutable_fields()),
            )
            self._store_refunds(booking.id, booking.refunds)
        return booking.id

    def update_booking_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        *,
        expected_updated_at: Optional[datetime] = None,
        **fields,
    ) -> None:
        with _storage_errors("update_booking_status"), transaction.atomic():
            rows = BookingModel.objects.filter(pk=booking_id)
            if expected_updated_at is not None:
                rows = rows.filter(updated_at=expected_updated_at)
            updated = rows.update(**_column_values(status, fields))
            if not updated:
                if expected_updated_at is not None and BookingModel.objects.filter(pk=booking_id).exists():
                    raise WriteConflict(f"Booking {booking_id} changed since it was read")
                raise BookingNotFound(booking_id)
            if "refunds" in fields:
                self._store_refunds(booking_id, fields["refunds"])

    def _store_refunds(self, booking_id: UUID, refunds: List[Refund]) -> None:
        """Refunds are append-only; insert the ones not stored yet."""

        stored = set(RefundModel.objects.filter(booking_id=booking_id).values_list("id", flat=True))
        RefundModel.objects.bulk_create([
            RefundModel(
                id=refund.id,
                booking_id=booking_id,
                amount=refund.amount.amount,
                currency=refund.amount.currency,
                reason=RefundReason(refund.reason).value,
                created_at=refund.created_at,
            )
            for refund in refunds
            if refund.id not in stored
        ])

    def get_booking(self, booking_id: UUID) -> Booking:
        with _storage_errors("get_booking"):
            try:
                return booking_to_entity(self._rows().get(pk=booking_id))
            except BookingModel.DoesNotExist:
                raise BookingNotFound(booking_id) from None

    def get_booking_for_update(self, booking_id: UUID) -> Booking:
        """Locks the row until the caller's transaction ends."""

        with _storage_errors("get_booking_for_update"):
            try:
                row = _lock_queryset_if_possible(self._rows()).get(pk=booking_id)
            except BookingModel.DoesNotExist:
                raise BookingNotFound(booking_id) from None
            return booking_to_entity(row)

    def get_booking_by_code(self, booking_code: str) -> Booking:
        with _storage_errors("get_booking_by_code"):
            try:
                return booking_to_entity(self._rows().get(booking_code=booking_code))
            except BookingModel.DoesNotExist:
                raise BookingNotFound(booking_code) from None

    def list_user_bookings(
        self,
        user_id: str,
        status: Optional[BookingStatus] = None,
        limit: int = 20,
    ) -> List[Booking]:
        with _storage_errors("list_user_bookings"):
            rows = self._rows().filter(user_id=user_id)
            if status is not None:
                rows = rows.filter(status=BookingStatus(status).value)
            rows = rows.order_by("-date", "-start_time")[:limit]
            return [booking_to_entity(row) for row in rows]

    def list_venue_bookings(
        self,
        venue_id: str,
        date: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 20,
    ) -> List[Booking]:
        with _storage_errors("list_venue_bookings"):
            rows = self._rows().filter(venue_id=venue_id)
            if date is not None:
                rows = rows.filter(date=date)
            if status is not None:
                rows = rows.filter(status=BookingStatus(status).value)
            rows = rows.order_by("date", "start_time")[:limit]
            return [booking_to_entity(row) for row in rows]

    def release_thread_resources(self) -> None:
        connections.close_all()
