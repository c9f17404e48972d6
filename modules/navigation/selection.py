"""Customer / device / date selection and folder navigation."""

import logging
import re
from typing import List, Optional

from core.bus.event_bus import EventBus
from core.interfaces.events import Event, EventType
from core.models.config import PollingConfig
from core.models.selection import Selection
from modules.storage.client import StorageClient

logger = logging.getLogger(__name__)

DATE_FOLDER_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def latest_folder(folders: List[str]) -> Optional[str]:
    """Pick the most recent date folder.

    Folders are compared as strings, which orders zero-padded YYYY-MM-DD
    names by date. Anything else gets a warning because the result may
    not be the newest day.

    Args:
        folders: Folder names

    Returns:
        The lexicographically last name, or None for an empty list
    """
    if not folders:
        return None

    odd = [name for name in folders if not DATE_FOLDER_PATTERN.match(name)]
    if odd:
        logger.warning(
            f"Date folders not in YYYY-MM-DD form, latest may be wrong: {', '.join(sorted(odd))}"
        )
    return max(folders)


class SelectionManager:
    """Applies selection changes to the poller, controller and pipeline.

    A change tears everything down synchronously before the new prefix is
    polled: the poller stops, the controller returns to Empty and any
    analysis in flight becomes stale. Nothing from the old selection can
    reach the display afterwards.
    """

    def __init__(
        self,
        poller,
        controller,
        pipeline,
        polling: Optional[PollingConfig] = None,
        base_folder: str = "",
        event_bus: Optional[EventBus] = None
    ):
        """Initialize the selection manager.

        Args:
            poller: ImageFeedPoller
            controller: SlideshowController
            pipeline: AnalysisPipeline
            polling: Polling settings (None = defaults)
            base_folder: Folder all customers live under
            event_bus: Event bus for publishing events (None = shared bus)
        """
        self._poller = poller
        self._controller = controller
        self._pipeline = pipeline
        self._polling = polling or PollingConfig()
        self._base_folder = base_folder
        self._event_bus = event_bus or EventBus()
        self._selection: Optional[Selection] = None

    @property
    def selection(self) -> Optional[Selection]:
        return self._selection

    def change_selection(self, level1: str, level2: str, level3: str) -> bool:
        """Switch the feed to another customer / device / date.

        Must be called from the event loop thread.

        Returns:
            True if the selection changed, False if it was already active
        """
        selection = Selection(level1, level2, level3)
        if selection == self._selection:
            logger.debug(f"Selection unchanged: {selection}")
            return False

        self._teardown()
        self._selection = selection
        prefix = selection.prefix(self._base_folder)

        logger.info(f"Selection changed to {selection} (prefix '{prefix}')")
        self._event_bus.publish(Event(
            type=EventType.SELECTION_CHANGED,
            data={
                "level1": level1,
                "level2": level2,
                "level3": level3,
                "prefix": prefix,
            },
            source="selection_manager"
        ))

        self._poller.start_polling(
            prefix,
            float(self._polling.interval_seconds),
            repeat=bool(self._polling.enabled),
        )
        return True

    def clear_selection(self) -> None:
        """Drop the selection and stop watching anything."""
        if self._selection is None:
            return

        self._teardown()
        logger.info(f"Selection cleared (was {self._selection})")
        self._selection = None
        self._event_bus.publish(Event(
            type=EventType.SELECTION_CHANGED,
            data={"level1": None, "level2": None, "level3": None, "prefix": None},
            source="selection_manager"
        ))

    def _teardown(self) -> None:
        self._poller.stop_polling()
        self._controller.reset()
        self._pipeline.invalidate()


class FolderNavigator:
    """Walks the folder hierarchy and feeds complete selections onward.

    Mirrors a breadcrumb: picking a customer loads its devices and picks
    the first one, picking a device loads its dates and picks the latest.
    """

    def __init__(self, storage: StorageClient, manager: SelectionManager, base_folder: str = ""):
        self._storage = storage
        self._manager = manager
        self._base_folder = base_folder.strip("/")

        self.level1: Optional[str] = None
        self.level2: Optional[str] = None
        self.level3: Optional[str] = None
        self.level1_options: List[str] = []
        self.level2_options: List[str] = []
        self.level3_options: List[str] = []

    async def list_level1(self) -> List[str]:
        """Load the customer folders.

        Raises:
            StorageUnavailable: If the listing fails
        """
        self.level1_options = await self._storage.list_folders(self._prefix())
        return list(self.level1_options)

    async def choose_level1(self, name: str) -> Optional[Selection]:
        """Pick a customer and auto-select its first device.

        Returns:
            The resulting selection, or None if the hierarchy is incomplete
        """
        self.level1 = name
        self.level2 = self.level3 = None
        self.level3_options = []
        self.level2_options = await self._storage.list_folders(self._prefix(name))

        if not self.level2_options:
            logger.warning(f"No devices under '{name}'")
            return None
        return await self.choose_level2(self.level2_options[0])

    async def choose_level2(self, name: str) -> Optional[Selection]:
        """Pick a device and auto-select its latest date.

        Returns:
            The resulting selection, or None if the hierarchy is incomplete
        """
        if self.level1 is None:
            raise ValueError("Choose a level-1 folder first")

        self.level2 = name
        self.level3 = None
        self.level3_options = await self._storage.list_folders(self._prefix(self.level1, name))

        date = latest_folder(self.level3_options)
        if date is None:
            logger.warning(f"No date folders under '{self.level1}/{name}'")
            return None
        return self.choose_level3(date)

    def choose_level3(self, name: str) -> Selection:
        """Pick a date and apply the complete selection."""
        if self.level1 is None or self.level2 is None:
            raise ValueError("Choose level-1 and level-2 folders first")

        self.level3 = name
        self._manager.change_selection(self.level1, self.level2, name)
        return Selection(self.level1, self.level2, name)

    def _prefix(self, *parts: str) -> str:
        segments = [self._base_folder] if self._base_folder else []
        segments.extend(part.strip("/") for part in parts)
        if not segments:
            return ""
        return "/".join(segments) + "/"
