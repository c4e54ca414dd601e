from decimal import Decimal

import pytest

from shared.application.message_bus import MessageBus
from shared.domain.value_objects import Money

from apps.bookings.application.booking_service import BookingService
from apps.bookings.domain.entities import Booking, Price
from apps.bookings.domain.requests import BookingRequest
from apps.bookings.infrastructure.memory import InMemoryPersistenceGateway
from apps.venues.domain.calendar import WEEKDAYS, DayAvailability, VenueCalendar
from apps.venues.domain.entities import Venue


@pytest.fixture
def open_calendar():
    """Every weekday open 08:00-22:00, no exceptions."""
    return VenueCalendar(weekly_template={
        name: DayAvailability(is_open=True, open_time="08:00", close_time="22:00")
        for name in WEEKDAYS
    })


@pytest.fixture
def venue(open_calendar):
    return Venue(
        id="venue-1",
        name="Center Court",
        calendar=open_calendar,
        hourly_rate=Money(Decimal("1000"), "INR"),
    )


@pytest.fixture
def gateway(venue):
    return InMemoryPersistenceGateway([venue])


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def service(gateway, bus):
    return BookingService(gateway, bus=bus, recurrence_workers=1)


@pytest.fixture
def make_booking():
    """Factory for PENDING bookings that skip admission."""

    counter = {"n": 0}

    def factory(start_time="10:00", end_time="11:00", date="2024-01-01", venue_id="venue-1",
                amount="1000", **overrides):
        counter["n"] += 1
        request = BookingRequest(venue_id=venue_id, date=date, start_time=start_time, end_time=end_time)
        booking = Booking.create(
            request,
            user_id=overrides.pop("user_id", "user-1"),
            price=Price.from_base(Money(Decimal(amount), "INR")),
            booking_code=overrides.pop("booking_code", f"CODE{counter['n']:02d}"),
        )
        booking.clear_events()
        for name, value in overrides.items():
            setattr(booking, name, value)
        return booking

    return factory
