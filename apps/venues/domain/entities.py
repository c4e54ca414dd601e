"""Venue: the bookable resource, its calendar and hourly rate."""

from dataclasses import dataclass, field

from shared.domain.value_objects import Money

from apps.venues.domain.calendar import VenueCalendar


@dataclass
class Venue:
    """
    Read model of a venue as the booking engine sees it

    Venue ids are opaque strings owned by the venue catalogue.
    """
    id: str
    name: str = ''
    calendar: VenueCalendar = field(default_factory=VenueCalendar)
    hourly_rate: Money = field(default_factory=Money.zero)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Venue id is required")

    def __str__(self):
        return f"Venue {self.id} ({self.name})"
