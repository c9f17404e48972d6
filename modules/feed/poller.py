"""Image feed poller that watches a storage prefix for new images."""

import asyncio
import logging
from typing import List, Optional

from core.bus.event_bus import EventBus
from core.interfaces.events import Event, EventType
from core.interfaces.storage import StorageUnavailable
from core.models.image import ImageDescriptor, sort_newest_first
from modules.storage.client import StorageClient

logger = logging.getLogger(__name__)


class ImageFeedPoller:
    """Keeps the canonical image list for one prefix up to date.

    The poller lists the prefix immediately and then on a fixed period.
    Only growth counts as news: when a listing has more images than the
    last significant one, the new list is handed to the slideshow
    controller. Equal or smaller listings are logged and ignored, which
    keeps eventually-consistent listings from flickering the display.

    The listener must provide ``on_list_loaded(images)`` and
    ``on_list_grew(images)`` (see ``SlideshowController``).
    """

    def __init__(
        self,
        storage: StorageClient,
        listener,
        event_bus: Optional[EventBus] = None
    ):
        """Initialize the poller.

        Args:
            storage: Storage client bound to the bucket
            listener: Receiver of significant list updates
            event_bus: Event bus for publishing events (None = shared bus)
        """
        self._storage = storage
        self._listener = listener
        self._event_bus = event_bus or EventBus()

        self._task: Optional[asyncio.Task] = None
        self._prefix: Optional[str] = None
        self._images: List[ImageDescriptor] = []
        self._last_observed_count = 0
        self._generation = 0

        # Statistics
        self._poll_count = 0
        self._update_count = 0
        self._ignored_count = 0
        self._error_count = 0

    @property
    def images(self) -> List[ImageDescriptor]:
        """Most recent successful listing, newest first."""
        return list(self._images)

    @property
    def prefix(self) -> Optional[str]:
        return self._prefix

    @property
    def last_observed_count(self) -> int:
        return self._last_observed_count

    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    async def fetch_once(self, prefix: str) -> List[ImageDescriptor]:
        """List the prefix once.

        Args:
            prefix: Storage prefix to list

        Returns:
            Image descriptors sorted newest first

        Raises:
            StorageUnavailable: If the listing fails
        """
        images = await self._storage.list_images(prefix)
        return sort_newest_first(images)

    def start_polling(self, prefix: str, interval_seconds: float, repeat: bool = True) -> asyncio.Task:
        """Start watching a prefix, replacing any previous watch.

        Args:
            prefix: Storage prefix to list
            interval_seconds: Seconds between listings
            repeat: False to list once without scheduling further polls

        Returns:
            The polling task
        """
        self.stop_polling()

        self._prefix = prefix
        self._images = []
        self._last_observed_count = 0

        self._task = asyncio.get_running_loop().create_task(
            self._poll_loop(prefix, interval_seconds, repeat),
            name=f"feed-poller:{prefix}",
        )
        logger.info(f"Polling started for '{prefix}' every {interval_seconds}s")
        return self._task

    def stop_polling(self) -> None:
        """Stop polling. Safe to call when not polling.

        Listings still in flight, including ones started by ``poll_now``,
        are discarded when they complete.
        """
        self._generation += 1
        if self._task is None:
            return

        if not self._task.done():
            self._task.cancel()
            logger.info(f"Polling stopped for '{self._prefix}'")
        self._task = None

    async def poll_now(self) -> bool:
        """Run one poll cycle for the current prefix immediately.

        Returns:
            True if the cycle produced a significant update
        """
        if self._prefix is None:
            logger.warning("Cannot poll: no prefix selected")
            return False
        return await self._poll_cycle(self._prefix)

    def get_stats(self) -> dict:
        """Get polling statistics.

        Returns:
            Dictionary containing polling statistics
        """
        return {
            "prefix": self._prefix,
            "polling": self.is_polling(),
            "image_count": len(self._images),
            "last_observed_count": self._last_observed_count,
            "poll_count": self._poll_count,
            "update_count": self._update_count,
            "ignored_count": self._ignored_count,
            "error_count": self._error_count,
        }

    async def _poll_loop(self, prefix: str, interval_seconds: float, repeat: bool) -> None:
        """Main polling loop (runs as a task on the event loop)."""
        while True:
            await self._poll_cycle(prefix)
            if not repeat:
                break
            await asyncio.sleep(interval_seconds)

    async def _poll_cycle(self, prefix: str) -> bool:
        """List once and forward the result if it is significant.

        Failures are logged and swallowed so the loop always reaches its
        next cycle.
        """
        self._poll_count += 1
        generation = self._generation
        try:
            images = await self.fetch_once(prefix)
        except StorageUnavailable as e:
            if generation != self._generation:
                return False
            self._error_count += 1
            logger.warning(f"Poll of '{prefix}' failed, keeping previous list: {e}")
            self._event_bus.publish(Event(
                type=EventType.POLL_FAILED,
                data={"prefix": prefix, "error": str(e)},
                source="feed_poller"
            ))
            return False

        if generation != self._generation:
            logger.debug(f"Discarding listing of '{prefix}': watch changed while listing")
            return False

        self._images = images

        try:
            return self._handle_listing(prefix, images)
        except Exception as e:
            self._error_count += 1
            logger.error(f"Error handling listing for '{prefix}': {e}", exc_info=True)
            self._event_bus.publish(Event(
                type=EventType.ERROR_OCCURRED,
                data={"error": str(e), "source": "feed_poller"},
                source="feed_poller"
            ))
            return False

    def _handle_listing(self, prefix: str, images: List[ImageDescriptor]) -> bool:
        new_count = len(images)
        previous_count = self._last_observed_count

        if new_count <= previous_count:
            self._ignored_count += 1
            logger.debug(
                f"Ignoring listing of '{prefix}': {new_count} images "
                f"(last significant: {previous_count})"
            )
            return False

        self._last_observed_count = new_count
        self._update_count += 1
        logger.info(f"Feed '{prefix}' grew from {previous_count} to {new_count} images")

        self._event_bus.publish(Event(
            type=EventType.LIST_UPDATED,
            data={"prefix": prefix, "count": new_count, "previous_count": previous_count},
            source="feed_poller"
        ))

        if previous_count == 0:
            self._listener.on_list_loaded(list(images))
        else:
            self._listener.on_list_grew(list(images))
        return True
