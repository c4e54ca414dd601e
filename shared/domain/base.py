"""
Domain building blocks

- Entity: identity-bearing, mutable, compared by id
- ValueObject: immutable, compared by value
- Aggregate: consistency boundary that records what happened to it as
  DomainEvents until a unit of work takes them
- DomainEvent: immutable-by-convention record of a fact, serializable to
  plain JSON types for logs and task payloads
"""

from abc import ABC
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List
from uuid import UUID, uuid4


def utcnow() -> datetime:
    """Timezone-aware current time, safe to hand to the ORM with USE_TZ"""
    return datetime.now(timezone.utc)


def to_plain(value: Any) -> Any:
    """JSON-friendly copy of a value: ids and decimals become strings"""
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(v) for v in value]
    return value


@dataclass(kw_only=True)
class Entity(ABC):
    """Has an id; two entities with the same id are the same entity"""
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def touch(self):
        """Advance updated_at; it never repeats, so stores can use it as a version"""
        now = utcnow()
        if self.updated_at is not None and now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        self.updated_at = now

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Marker base for immutable values; dataclass equality applies"""


@dataclass(kw_only=True, eq=False)
class Aggregate(Entity):
    """
    Aggregate root

    Mutating methods append events; whoever persists the aggregate pulls
    them and publishes them once the write is durable.
    """
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def add_event(self, event: 'DomainEvent'):
        self._events.append(event)

    def clear_events(self):
        self._events.clear()

    def pull_events(self) -> List['DomainEvent']:
        """Take the pending events, leaving none behind"""
        pending, self._events = self._events, []
        return pending

    @property
    def events(self) -> List['DomainEvent']:
        """Pending events, as a copy"""
        return list(self._events)


@dataclass(kw_only=True)
class DomainEvent:
    """
    Something that happened to an aggregate

    Subclasses declare their payload as keyword-only fields.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utcnow)
    aggregate_id: UUID | None = None

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        data = to_plain(self)
        data['event_type'] = self.event_type
        return data
