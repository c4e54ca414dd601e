"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from celery import shared_task  # type: ignore

from apps.bookings.domain.exceptions import (
    BookingNotFound,
    InvalidTransition,
    StorageError,
    ValidationError,
    WriteConflict,
)
from apps.bookings.services import build_booking_service

logger = logging.getLogger(__name__)


@shared_task(
    name="bookings.process_payment_result",
    autoretry_for=(StorageError, WriteConflict),
    retry_backoff=True,
    retry_kwargs={"max_retries": 5},
)
def process_payment_result(
    booking_id: str,
    status: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Apply a payment status notification to a booking.

    Notifications for unknown bookings, unknown payment statuses or
    transitions the booking no longer allows are logged and dropped; a
    redelivered notification is a no-op. Storage outages and bookings that
    kept changing underneath the task are retried.

    Returns:
        dict: {"booking_id", "status", "payment_status"} or {"booking_id", "error"}
    """
    service = build_booking_service()
    try:
        booking = service.on_payment_result(UUID(str(booking_id)), status, metadata)
    except ValidationError as e:
        logger.error("Payment result for booking %s dropped: %s", booking_id, e)
        return {"booking_id": str(booking_id), "error": "invalid_status"}
    except BookingNotFound:
        logger.error("Payment result %s for unknown booking %s", status, booking_id)
        return {"booking_id": str(booking_id), "error": "not_found"}
    except InvalidTransition as e:
        logger.warning("Payment result %s ignored for booking %s: %s", status, booking_id, e)
        return {"booking_id": str(booking_id), "error": "invalid_transition"}

    return {
        "booking_id": str(booking.id),
        "status": booking.status.value,
        "payment_status": booking.payment_status.value,
    }
