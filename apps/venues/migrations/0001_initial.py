from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Venue",
            fields=[
                ("id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(blank=True, max_length=255)),
                (
                    "hourly_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Base price per hour.",
                        max_digits=10,
                    ),
                ),
                ("currency", models.CharField(default="INR", max_length=3)),
                (
                    "weekly_template",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Weekday name -> {isOpen, openTime, closeTime, slots}.",
                    ),
                ),
                (
                    "availability_exceptions",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="List of {date, isAvailable, slots, reason}; one per date.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Venue",
                "verbose_name_plural": "Venues",
                "ordering": ["id"],
            },
        ),
    ]
