from decimal import Decimal
import uuid

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("venues", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("date", models.CharField(help_text="YYYY-MM-DD", max_length=10)),
                ("start_time", models.CharField(help_text="HH:MM", max_length=5)),
                ("end_time", models.CharField(help_text="HH:MM, 24:00 allowed", max_length=5)),
                ("total_players", models.PositiveSmallIntegerField(default=1)),
                (
                    "booking_type",
                    models.CharField(
                        choices=[("full_venue", "Full venue"), ("partial_venue", "Partial venue")],
                        default="full_venue",
                        max_length=20,
                    ),
                ),
                ("court_number", models.CharField(blank=True, max_length=32, null=True)),
                ("notes", models.TextField(blank=True)),
                ("booking_code", models.CharField(editable=False, max_length=16, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("checked_in", "Checked in"),
                            ("completed", "Completed"),
                            ("cancelled_by_user", "Cancelled by user"),
                            ("cancelled_by_venue", "Cancelled by venue"),
                            ("cancelled_by_admin", "Cancelled by admin"),
                            ("rejected", "Rejected"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=32,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("paid", "Paid"),
                            ("partially_refunded", "Partially refunded"),
                            ("fully_refunded", "Fully refunded"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("status_reason", models.CharField(blank=True, max_length=255)),
                ("base_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("taxes", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("fees", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("discounts", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("total_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("currency", models.CharField(default="INR", max_length=3)),
                ("is_recurring", models.BooleanField(default=False)),
                ("child_booking_ids", models.JSONField(blank=True, default=list)),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                (
                    "cancelled_by",
                    models.CharField(
                        blank=True,
                        choices=[("user", "User"), ("venue", "Venue"), ("admin", "Admin")],
                        max_length=10,
                    ),
                ),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("checked_out_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="children",
                        to="bookings.booking",
                    ),
                ),
                (
                    "venue",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="venues.venue",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["date", "start_time"],
                "indexes": [
                    models.Index(fields=["venue", "date", "start_time"], name="bookings_bo_venue_i_3f1c2a_idx"),
                    models.Index(fields=["user_id", "date"], name="bookings_bo_user_id_8d4e7b_idx"),
                    models.Index(fields=["status"], name="bookings_bo_status_5a9e0c_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_time__gt", models.F("start_time"))),
                        name="booking_valid_window",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(max_length=3)),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("cancellation", "Cancellation"),
                            ("duplicate", "Duplicate"),
                            ("fraudulent", "Fraudulent"),
                            ("requested_by_customer", "Requested by customer"),
                            ("other", "Other"),
                        ],
                        default="cancellation",
                        max_length=32,
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="refunds",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Refund",
                "verbose_name_plural": "Refunds",
                "ordering": ["created_at"],
            },
        ),
    ]
