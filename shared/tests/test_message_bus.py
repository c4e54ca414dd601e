from dataclasses import dataclass

import pytest

from shared.application.message_bus import MessageBus
from shared.application.uow import EventPublishingUnitOfWork
from shared.domain.base import Aggregate, DomainEvent


@dataclass(kw_only=True)
class Pinged(DomainEvent):
    label: str


@dataclass(kw_only=True, eq=False)
class Counter(Aggregate):
    value: int = 0

    def bump(self):
        self.value += 1
        self.add_event(Pinged(aggregate_id=self.id, label=f"bump-{self.value}"))


@dataclass
class Add:
    a: int
    b: int


def test_command_goes_to_single_handler():
    bus = MessageBus()
    bus.register_command_handler(Add, lambda cmd: cmd.a + cmd.b)

    assert bus.handle_command(Add(2, 3)) == 5
    with pytest.raises(ValueError):
        bus.register_command_handler(Add, lambda cmd: 0)


def test_unknown_command():
    with pytest.raises(ValueError):
        MessageBus().handle_command(Add(1, 1))


def test_handler_errors_reach_the_caller():
    bus = MessageBus()

    def boom(cmd):
        raise KeyError("nope")

    bus.register_command_handler(Add, boom)
    with pytest.raises(KeyError):
        bus.handle_command(Add(1, 1))


def test_failing_subscriber_does_not_stop_others():
    bus = MessageBus()
    seen = []

    def broken(event):
        raise RuntimeError("subscriber down")

    bus.subscribe(Pinged, broken)
    bus.subscribe(Pinged, lambda event: seen.append(event.label))

    bus.publish_events([Pinged(label="a"), Pinged(label="b")])

    assert seen == ["a", "b"]


def test_unit_of_work_publishes_on_commit_only():
    bus = MessageBus()
    seen = []
    bus.subscribe(Pinged, lambda event: seen.append(event.label))

    counter = Counter()
    with EventPublishingUnitOfWork(bus) as uow:
        counter.bump()
        uow.collect_events(counter)
        assert seen == []
    assert seen == ["bump-1"]
    assert counter.events == []

    with pytest.raises(RuntimeError):
        with EventPublishingUnitOfWork(bus) as uow:
            counter.bump()
            uow.collect_events(counter)
            raise RuntimeError("abort")
    assert seen == ["bump-1"]


def test_entity_equality_is_by_id():
    first = Counter()
    same = Counter(id=first.id, value=9)
    assert first == same
    assert hash(first) == hash(same)
    assert first != Counter()


def test_event_to_dict_is_json_friendly():
    counter = Counter()
    counter.bump()
    (event,) = counter.pull_events()

    data = event.to_dict()

    assert data["event_type"] == "Pinged"
    assert data["aggregate_id"] == str(counter.id)
    assert data["label"] == "bump-1"
    assert isinstance(data["occurred_at"], str)
    assert counter.events == []
