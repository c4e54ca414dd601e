"""Venue model: the row the booking engine locks and reads calendars from."""

from __future__ import annotations

from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import Money

from apps.venues.domain.calendar import VenueCalendar
from apps.venues.domain.entities import Venue as VenueEntity


class Venue(models.Model):
    """Bookable venue with its availability calendar."""

    id = models.CharField(primary_key=True, max_length=64)
    name = models.CharField(max_length=255, blank=True)
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Base price per hour."),
    )
    currency = models.CharField(max_length=3, default="INR")
    weekly_template = models.JSONField(
        default=dict,
        blank=True,
        help_text=_("Weekday name -> {isOpen, openTime, closeTime, slots}."),
    )
    availability_exceptions = models.JSONField(
        default=list,
        blank=True,
        help_text=_("List of {date, isAvailable, slots, reason}; one per date."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Venue")
        verbose_name_plural = _("Venues")
        ordering = ["id"]

    def __str__(self) -> str:
        return self.name or self.id

    def to_entity(self) -> VenueEntity:
        return VenueEntity(
            id=self.id,
            name=self.name,
            calendar=VenueCalendar.from_dict(self.weekly_template, self.availability_exceptions),
            hourly_rate=Money(self.hourly_rate, self.currency),
        )

    def store_calendar(self, calendar: VenueCalendar) -> None:
        self.weekly_template, self.availability_exceptions = calendar.to_dict()
        self.save(update_fields=["weekly_template", "availability_exceptions", "updated_at"])
