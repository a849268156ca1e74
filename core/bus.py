"""
In-process Event Bus for LiveLens.

Carries the control plane only: capture/detection availability, overlay image
selection, and shutdown. Frames and observations never travel over the bus;
they go through the scheduler and the ResultStore.

Handlers run synchronously on the publisher's thread. A handler that raises
is logged and skipped; the remaining handlers still run.
"""
import threading
from collections import defaultdict
from typing import Callable, Any, Dict, List, Type
from utils.logger import Logger


class EventBus:
    """
    Publish/subscribe keyed by event class.

    Usage:
        bus = EventBus()
        bus.subscribe(OverlayImageChanged, status.on_overlay_changed)
        bus.publish(OverlayImageChanged(available=True, path="/tmp/icon.png"))
    """

    def __init__(self):
        self._subscribers: Dict[Type, List[Callable]] = defaultdict(list)
        self._lock = threading.Lock()
        self.logger = Logger("EventBus")

    def subscribe(self, event_type: Type, handler: Callable[[Any], None]) -> None:
        """Register a handler for an event class."""
        with self._lock:
            self._subscribers[event_type].append(handler)
        self.logger.debug(f"Subscribed {handler.__qualname__} to {event_type.__name__}")

    def unsubscribe(self, event_type: Type, handler: Callable[[Any], None]) -> None:
        """Remove a handler from a specific event type."""
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: Any) -> int:
        """
        Deliver an event to every handler subscribed to its exact class.

        Returns:
            The number of handlers that completed without raising.
        """
        event_type = type(event)
        with self._lock:
            handlers = list(self._subscribers.get(event_type, []))

        if not handlers:
            self.logger.debug(f"No subscribers for {event_type.__name__}")
            return 0

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                self.logger.error(
                    f"Error in handler {handler.__qualname__} for "
                    f"{event_type.__name__}: {e}"
                )
        return delivered

    def clear(self) -> None:
        """Remove all subscriptions."""
        with self._lock:
            self._subscribers.clear()

    def subscriber_count(self, event_type: Type) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))
