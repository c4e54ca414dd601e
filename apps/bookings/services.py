"""Wiring of the booking engine for Django processes."""

from __future__ import annotations

from django.conf import settings  # type: ignore

from shared.application.uow import DjangoUnitOfWork

from apps.bookings.application.booking_service import BookingService
from apps.bookings.application.locks import KeyedLock
from apps.bookings.infrastructure.django_gateway import DjangoPersistenceGateway


def build_booking_service() -> BookingService:
    """
    Service backed by the ORM, configured from the BOOKING_* settings.

    Each call returns an independent service with its own keyed locks.
    Services in different processes or threads stay consistent through
    the database: venue rows are locked for admission and booking rows
    for status changes.
    """

    return BookingService(
        DjangoPersistenceGateway(),
        uow_factory=DjangoUnitOfWork,
        locks=KeyedLock(timeout=getattr(settings, "BOOKING_LOCK_TIMEOUT", None)),
        max_attempts=getattr(settings, "BOOKING_ADMISSION_MAX_ATTEMPTS", 3),
        recurrence_workers=getattr(settings, "BOOKING_RECURRENCE_WORKERS", 4),
        max_occurrences=getattr(settings, "BOOKING_RECURRENCE_MAX_OCCURRENCES", 366),
        code_length=getattr(settings, "BOOKING_CODE_LENGTH", 6),
    )
