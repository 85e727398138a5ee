"""
In-process change notifications.

Mutating services publish a ChangeEvent naming the trip whose participants
or expenses changed; consumers (UI push channels, caches) subscribe and
re-fetch what they show.
"""
import logging
from threading import RLock
from typing import Callable, List
from tripledger.schemas.event import ChangeEvent, ChangeType

logger = logging.getLogger(__name__)

Subscriber = Callable[[ChangeEvent], None]


class EventBus:
    """Synchronous publish/subscribe for change events."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = RLock()

    def subscribe(self, handler: Subscriber) -> Subscriber:
        with self._lock:
            self._subscribers.append(handler)
        return handler

    def unsubscribe(self, handler: Subscriber) -> None:
        with self._lock:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver event to every subscriber. A failing subscriber does not stop the others."""
        with self._lock:
            subscribers = list(self._subscribers)
        for handler in subscribers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Change event subscriber failed for {event.type} on trip {event.trip_id}: {e}", exc_info=True)


event_bus = EventBus()


def emit(change_type: ChangeType, trip_id: str) -> ChangeEvent:
    """Publish a change event on the application bus."""
    event = ChangeEvent(type=change_type, trip_id=trip_id)
    event_bus.publish(event)
    return event


@event_bus.subscribe
def log_change_event(event: ChangeEvent) -> None:
    logger.info(f"{event.type} for trip {event.trip_id}")
