"""Event bus connecting the feed engine to whatever renders the split view."""

import logging
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from core.interfaces.events import Event, EventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], None]

# Enough for a few minutes of slideshow and poll traffic
DEFAULT_HISTORY_SIZE = 500


class EventBus:
    """Singleton pub/sub bus for feed, slideshow and analysis events.

    The poller, the slideshow controller and the selection manager publish
    here. A renderer subscribes to the display events (``IMAGE_READY``,
    ``ANALYSIS_READY``, ``DISPLAY_CLEARED`` ...) and can call ``latest`` to
    catch up with the current display when it attaches late.

    Example:
        bus = EventBus()
        bus.subscribe(EventType.ANALYSIS_READY, panel.show_result)
        shown = bus.latest(EventType.IMAGE_READY)
    """

    _instance = None

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._history: Deque[Event] = deque(maxlen=DEFAULT_HISTORY_SIZE)
        self._initialized = True

        logger.info("EventBus initialized")

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Register a handler for one event type. Duplicates are ignored."""
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug(f"Subscribed handler to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Register a handler for every event type (used by ``feedview watch``)."""
        for event_type in EventType:
            self.subscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug(f"Unsubscribed handler from {event_type.value}")

    def publish(self, event: Event) -> None:
        """Deliver an event to its subscribers.

        Handler errors are logged and never reach the publisher, so a broken
        renderer cannot stop the poller or the slideshow timer.

        Args:
            event: Event to publish
        """
        self._history.append(event)
        logger.debug(f"Publishing event: {event.type.value} from {event.source}")

        # Handlers may unsubscribe themselves while we iterate
        for handler in list(self._subscribers.get(event.type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in event handler for {event.type.value}: {e}",
                    exc_info=True
                )

    def get_history(self, event_type: Optional[EventType] = None, limit: int = 100) -> List[Event]:
        """Get recent events, most recent first.

        Args:
            event_type: Filter by event type (None = all events)
            limit: Maximum number of events to return
        """
        matching = [e for e in reversed(self._history) if event_type is None or e.type == event_type]
        return matching[:limit]

    def latest(self, event_type: EventType) -> Optional[Event]:
        """Most recent event of a type, or None if none was published."""
        for event in reversed(self._history):
            if event.type == event_type:
                return event
        return None

    def reset(self) -> None:
        """Drop all subscribers and history (mainly for testing)."""
        self._subscribers.clear()
        self._history.clear()
        logger.debug("Event bus reset")

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscribers.get(event_type, []))
