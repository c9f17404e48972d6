"""Single-slot timers on the asyncio event loop."""

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SingleShotTimer:
    """A timer that owns at most one pending callback.

    ``schedule()`` always cancels the previous handle before creating a new
    one, so callers never end up with two live timers even when a
    transition reschedules from inside the timer's own callback.

    Example:
        timer = SingleShotTimer("auto-advance")
        timer.schedule(10.0, controller.next)
        timer.cancel()
    """

    def __init__(self, name: str, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Initialize the timer.

        Args:
            name: Name used in log messages
            loop: Event loop to schedule on (None = running loop)
        """
        self._name = name
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._fire_count = 0

    @property
    def active(self) -> bool:
        """True while a callback is pending."""
        return self._handle is not None

    @property
    def fire_count(self) -> int:
        return self._fire_count

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        """Cancel any pending callback and schedule a new one.

        Args:
            delay: Seconds until the callback runs
            callback: Function to call
            *args: Arguments for the callback
        """
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, callback, args)
        logger.debug(f"Timer '{self._name}' scheduled in {delay:.2f}s")

    def cancel(self) -> bool:
        """Cancel the pending callback.

        Returns:
            True if a callback was pending, False otherwise
        """
        if self._handle is None:
            return False

        self._handle.cancel()
        self._handle = None
        logger.debug(f"Timer '{self._name}' cancelled")
        return True

    def _fire(self, callback: Callable[..., Any], args: tuple) -> None:
        # Clear first: the callback is allowed to schedule the next run
        self._handle = None
        self._fire_count += 1
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Error in timer '{self._name}' callback: {e}", exc_info=True)
