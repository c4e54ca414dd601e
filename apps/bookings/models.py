"""Booking storage models; the domain aggregate lives in apps.bookings.domain."""

from __future__ import annotations

from decimal import Decimal
import uuid

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """Admitted time window at a venue."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        CHECKED_IN = "checked_in", _("Checked in")
        COMPLETED = "completed", _("Completed")
        CANCELLED_BY_USER = "cancelled_by_user", _("Cancelled by user")
        CANCELLED_BY_VENUE = "cancelled_by_venue", _("Cancelled by venue")
        CANCELLED_BY_ADMIN = "cancelled_by_admin", _("Cancelled by admin")
        REJECTED = "rejected", _("Rejected")
        FAILED = "failed", _("Failed")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        PROCESSING = "processing", _("Processing")
        PAID = "paid", _("Paid")
        PARTIALLY_REFUNDED = "partially_refunded", _("Partially refunded")
        FULLY_REFUNDED = "fully_refunded", _("Fully refunded")
        FAILED = "failed", _("Failed")

    class BookingType(models.TextChoices):
        FULL_VENUE = "full_venue", _("Full venue")
        PARTIAL_VENUE = "partial_venue", _("Partial venue")

    class CancelledBy(models.TextChoices):
        USER = "user", _("User")
        VENUE = "venue", _("Venue")
        ADMIN = "admin", _("Admin")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    venue = models.ForeignKey(
        "venues.Venue",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    user_id = models.CharField(max_length=64, db_index=True)
    date = models.CharField(max_length=10, help_text=_("YYYY-MM-DD"))
    start_time = models.CharField(max_length=5, help_text=_("HH:MM"))
    end_time = models.CharField(max_length=5, help_text=_("HH:MM, 24:00 allowed"))
    total_players = models.PositiveSmallIntegerField(default=1)
    booking_type = models.CharField(
        max_length=20,
        choices=BookingType.choices,
        default=BookingType.FULL_VENUE,
    )
    court_number = models.CharField(max_length=32, blank=True, null=True)
    notes = models.TextField(blank=True)
    booking_code = models.CharField(max_length=16, unique=True, editable=False)

    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    status_reason = models.CharField(max_length=255, blank=True)

    base_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    taxes = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    fees = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discounts = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="INR")

    is_recurring = models.BooleanField(default=False)
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
    )
    child_booking_ids = models.JSONField(default=list, blank=True)

    cancellation_reason = models.CharField(max_length=255, blank=True)
    cancelled_by = models.CharField(max_length=10, choices=CancelledBy.choices, blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_out_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["date", "start_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_window",
            ),
        ]
        indexes = [
            models.Index(fields=["venue", "date", "start_time"], name="bookings_bo_venue_i_3f1c2a_idx"),
            models.Index(fields=["user_id", "date"], name="bookings_bo_user_id_8d4e7b_idx"),
            models.Index(fields=["status"], name="bookings_bo_status_5a9e0c_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} at {self.venue_id} on {self.date}"


class Refund(models.Model):
    """One refund recorded against a booking's payment."""

    class Reason(models.TextChoices):
        CANCELLATION = "cancellation", _("Cancellation")
        DUPLICATE = "duplicate", _("Duplicate")
        FRAUDULENT = "fraudulent", _("Fraudulent")
        REQUESTED_BY_CUSTOMER = "requested_by_customer", _("Requested by customer")
        OTHER = "other", _("Other")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="refunds")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3)
    reason = models.CharField(max_length=32, choices=Reason.choices, default=Reason.CANCELLATION)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Refund")
        verbose_name_plural = _("Refunds")
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"Refund {self.amount} {self.currency} for {self.booking_id}"
