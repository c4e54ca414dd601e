"""
Units of work

A unit of work brackets one use case. Aggregates touched inside it hand
over their pending events; the events reach the message bus only when the
block exits cleanly and are dropped when it raises.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.application.message_bus import MessageBus
from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):

    def __init__(self, bus: MessageBus):
        self.bus = bus
        self._events: List[DomainEvent] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Make the work durable and hand the pending events to the bus"""

    def rollback(self):
        if self._events:
            logger.debug("Rolling back, discarding %d events", len(self._events))
        self._events.clear()

    def collect_events(self, aggregate):
        """Take over the aggregate's pending events"""
        pulled = aggregate.pull_events()
        if pulled:
            self._events.extend(pulled)
            logger.debug("Collected %d events from %s %s",
                         len(pulled), type(aggregate).__name__, aggregate.id)

    def _drain(self) -> List[DomainEvent]:
        pending, self._events = self._events, []
        return pending


class EventPublishingUnitOfWork(AbstractUnitOfWork):
    """
    For stores whose every call is durable on return (the in-memory
    gateway): commit only has to publish.
    """

    def commit(self):
        pending = self._drain()
        if pending:
            self.bus.publish_events(pending)


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Runs the block in transaction.atomic()

    Events are handed to transaction.on_commit(), so when this unit of work
    is nested in an outer transaction they wait for the outermost commit
    and vanish with a rollback.

    Usage:
        with DjangoUnitOfWork(bus) as uow:
            booking = gateway.get_booking(booking_id)
            booking.confirm()
            gateway.save_booking(booking)
            uow.collect_events(booking)
    """

    def __init__(self, bus: MessageBus):
        super().__init__(bus)
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic()
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        pending = self._drain()
        if pending:
            logger.debug("Deferring %d events until commit", len(pending))
            transaction.on_commit(lambda: self.bus.publish_events(pending))
