"""
Message bus

Commands go to exactly one handler and return its result; domain events
fan out to every subscriber of their type. Each BookingService owns its
own bus.
"""

from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


def _handler_name(handler: Callable) -> str:
    return getattr(handler, '__qualname__', None) or repr(handler)


class MessageBus:

    def __init__(self):
        self._subscribers: DefaultDict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)
        self._command_handlers: Dict[Type, Callable[[Any], Any]] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler):
        self._subscribers[event_type].append(handler)
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def register_command_handler(self, command_type: Type, handler: Callable[[Any], Any]):
        """Raises ValueError when `command_type` already has a handler"""
        if command_type in self._command_handlers:
            raise ValueError(f"{command_type.__name__} already has a handler")
        self._command_handlers[command_type] = handler

    def handle_command(self, command: Any) -> Any:
        """Run the command's handler; its exceptions reach the caller after being logged"""
        command_type = type(command)
        try:
            handler = self._command_handlers[command_type]
        except KeyError:
            raise ValueError(f"No handler for {command_type.__name__}") from None

        logger.debug("Handling %s", command_type.__name__)
        try:
            return handler(command)
        except Exception as e:
            logger.info("%s raised %s: %s", command_type.__name__, type(e).__name__, e)
            raise

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Deliver each event to its subscribers in subscription order

        A failing subscriber is logged with its traceback; the remaining
        subscribers and events are still delivered.
        """
        for event in events:
            subscribers = self._subscribers.get(type(event), ())
            for handler in subscribers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "Subscriber %s failed on %s %s",
                        _handler_name(handler), event.event_type, event.event_id,
                    )
