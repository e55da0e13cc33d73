"""Event emitters for the subdomain engine."""

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from subdomain_engine.core.events_model import SubdomainEvent

logger = logging.getLogger(__name__)


ALLOWED_EVENTS = {
    "subdomain.created",
    "subdomain.activated",
    "subdomain.propagated",
    "subdomain.failed",
    "subdomain.retried",
    "subdomain.deleted",
}


class EventEmitter(ABC):
    """Abstract event emitter."""

    @abstractmethod
    def emit(self, events: Iterable[SubdomainEvent]) -> None:
        """Emit one or more events."""
        pass


def _check(event: SubdomainEvent) -> None:
    if event.event_type not in ALLOWED_EVENTS:
        raise ValueError(f"Invalid event type: {event.event_type}")
    if event.subdomain_id is None:
        raise ValueError("Event must have subdomain_id")


class LoggingEventEmitter(EventEmitter):
    """Writes events to the application log."""

    def emit(self, events: Iterable[SubdomainEvent]) -> None:
        for event in events:
            _check(event)
            logger.info(
                f"[event] {event.event_type} | subdomain={event.subdomain_id} "
                f"| {event.metadata}"
            )


class RecordingEventEmitter(EventEmitter):
    """Keeps events in memory (tests, admin inspection)."""

    def __init__(self):
        self.events = []

    def emit(self, events: Iterable[SubdomainEvent]) -> None:
        for event in events:
            _check(event)
            self.events.append(event)

    def types(self) -> list[str]:
        return [e.event_type for e in self.events]


class MultiEventEmitter:
    """Fan-out to multiple emitters."""

    def __init__(self, emitters: Iterable[EventEmitter]):
        self._emitters = list(emitters)

    def emit(self, events: Iterable[SubdomainEvent]):
        events = list(events)
        for emitter in self._emitters:
            emitter.emit(events)


class NullEventEmitter(EventEmitter):
    """No-op emitter (used when events are not needed)."""

    def emit(self, events: Iterable[SubdomainEvent]) -> None:
        pass
