"""Event definitions for the FeedView event bus."""

from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict
import time


class EventType(Enum):
    """Enumeration of all event types in the system."""

    # Selection events
    SELECTION_CHANGED = "selection.changed"

    # Feed events
    LIST_UPDATED = "feed.list_updated"
    POLL_FAILED = "feed.poll_failed"

    # Slideshow events
    INDEX_CHANGED = "slideshow.index_changed"
    AUTOPLAY_CHANGED = "slideshow.autoplay_changed"
    DISPLAY_CLEARED = "slideshow.display_cleared"

    # Display events
    IMAGE_READY = "display.image_ready"
    ANALYSIS_READY = "analysis.ready"
    ANALYSIS_ERROR = "analysis.error"
    ANALYSIS_SKIPPED = "analysis.skipped"

    # Error events
    ERROR_OCCURRED = "error.occurred"


@dataclass
class Event:
    """Represents an event in the system.

    Attributes:
        type: The type of event
        data: Dictionary containing event-specific data
        timestamp: Unix timestamp when event was created
        source: String identifying the source module/component
    """
    type: EventType
    data: Dict[str, Any]
    timestamp: float = None
    source: str = "unknown"

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()
