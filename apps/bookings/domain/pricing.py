"""Price of an admitted window: hourly rate x duration x slot multiplier."""

from decimal import Decimal
from typing import Optional

from shared.domain.value_objects import Money, TimeWindow

from apps.bookings.domain.entities import Price
from apps.venues.domain.calendar import TimeSlot


def quote_price(hourly_rate: Money, window: TimeWindow, slot: Optional[TimeSlot] = None) -> Price:
    multiplier = slot.price_multiplier if slot is not None else Decimal('1')
    hours = Decimal(window.duration_minutes) / Decimal(60)
    base = (hourly_rate * hours * multiplier).quantize()
    return Price.from_base(base)
