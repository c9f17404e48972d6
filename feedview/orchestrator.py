"""Main orchestrator for FeedView."""

import logging
from dataclasses import asdict
from typing import Optional

from core.bus.event_bus import EventBus
from core.config.config_loader import ConfigInvalid, ConfigLoader, validate_config
from core.config.user_store import UserConfigStore
from core.models.config import FeedViewConfig
from core.models.selection import Selection
from core.registry.plugin_registry import PluginRegistry
from modules.analysis.pipeline import AnalysisPipeline
from modules.feed.poller import ImageFeedPoller
from modules.inference.client import InferenceClient
from modules.navigation.selection import FolderNavigator, SelectionManager
from modules.slideshow.controller import SlideshowController
from modules.storage.client import StorageClient

# Import plugins to register providers
import modules.inference.plugin  # noqa: F401
import modules.storage.plugin  # noqa: F401

logger = logging.getLogger(__name__)


class FeedViewOrchestrator:
    """Main orchestrator wiring the feed, slideshow and analysis together.

    The orchestrator builds the providers named in the configuration and
    connects poller -> controller -> pipeline, with the selection manager
    in front. All components live on the caller's event loop; ``start()``
    and the user operations must be called from inside it.
    """

    def __init__(
        self,
        config: Optional[FeedViewConfig] = None,
        config_path: Optional[str] = None,
        user_id: Optional[str] = None,
        event_bus: Optional[EventBus] = None
    ):
        """Initialize the orchestrator.

        Args:
            config: Ready configuration (skips loading)
            config_path: Path to configuration file (optional)
            user_id: Overlay this user's saved configuration
            event_bus: Event bus (None = shared bus)
        """
        if config is None:
            config = self.load_config(config_path=config_path, user_id=user_id)

        self.config = config
        self.event_bus = event_bus or EventBus()

        self.storage: Optional[StorageClient] = None
        self.inference: Optional[InferenceClient] = None
        self.pipeline: Optional[AnalysisPipeline] = None
        self.controller: Optional[SlideshowController] = None
        self.poller: Optional[ImageFeedPoller] = None
        self.selection: Optional[SelectionManager] = None
        self.navigator: Optional[FolderNavigator] = None

        self._storage_provider = None
        self._inference_provider = None
        self._running = False

        logger.info("FeedView orchestrator initialized")

    @staticmethod
    def load_config(
        config_path: Optional[str] = None,
        user_id: Optional[str] = None,
        env_file: Optional[str] = None
    ) -> FeedViewConfig:
        """Load configuration: file (or defaults), user overlay, then environment.

        Raises:
            ConfigInvalid: If a file cannot be read
        """
        loader = ConfigLoader()
        if config_path:
            loader.load_from_file(config_path)
        else:
            loader.load_defaults()

        if user_id:
            loader.config = UserConfigStore().load_config(user_id, defaults=loader.to_config()).to_dict()

        loader.apply_env_overrides(env_file)
        return loader.to_config()

    def validate(self) -> None:
        """Check the configuration against the registered providers.

        Raises:
            ConfigInvalid: Listing every problem found
        """
        registry = PluginRegistry()
        validate_config(
            self.config,
            storage_providers=registry.list_storage_providers(),
            inference_providers=registry.list_inference_providers(),
        )

    def build_storage(self) -> StorageClient:
        """Create the storage provider and client.

        Raises:
            ConfigInvalid: If the provider is unknown or fails to initialize
        """
        if self.storage is not None:
            return self.storage

        storage_config = self.config.storage
        provider_class = PluginRegistry().get_storage_provider(storage_config.provider)
        if not provider_class:
            raise ConfigInvalid(f"Storage provider '{storage_config.provider}' not found")

        provider = provider_class()
        if not provider.initialize(asdict(storage_config)):
            raise ConfigInvalid(f"Failed to initialize storage provider '{storage_config.provider}'")

        self._storage_provider = provider
        self.storage = StorageClient(provider, storage_config.bucket)
        return self.storage

    def build_inference(self, force: bool = False) -> Optional[InferenceClient]:
        """Create the inference provider and client.

        Args:
            force: Build even when analysis is disabled

        Returns:
            The client, or None when analysis is disabled

        Raises:
            ConfigInvalid: If the provider is unknown or fails to initialize
        """
        if self.inference is not None:
            return self.inference

        analysis_config = self.config.analysis
        if not analysis_config.enabled and not force:
            logger.info("AI analysis disabled")
            return None

        provider_class = PluginRegistry().get_inference_provider(analysis_config.provider)
        if not provider_class:
            raise ConfigInvalid(f"Inference provider '{analysis_config.provider}' not found")

        provider = provider_class()
        if not provider.initialize(asdict(analysis_config)):
            raise ConfigInvalid(f"Failed to initialize inference provider '{analysis_config.provider}'")

        self._inference_provider = provider
        self.inference = InferenceClient(provider)
        return self.inference

    def start(self) -> bool:
        """Validate the configuration and build every component.

        Returns:
            True if started, False if already running

        Raises:
            ConfigInvalid: If the configuration cannot start the feed
        """
        if self._running:
            logger.warning("Orchestrator already running")
            return False

        self.validate()

        storage = self.build_storage()
        inference = self.build_inference()

        self.pipeline = AnalysisPipeline(
            storage=storage,
            inference=inference,
            model=self.config.model,
            analysis=self.config.analysis,
        )
        self.controller = SlideshowController(
            pipeline=self.pipeline,
            config=self.config.slideshow,
            event_bus=self.event_bus,
        )
        self.poller = ImageFeedPoller(
            storage=storage,
            listener=self.controller,
            event_bus=self.event_bus,
        )
        self.selection = SelectionManager(
            poller=self.poller,
            controller=self.controller,
            pipeline=self.pipeline,
            polling=self.config.polling,
            base_folder=self.config.storage.base_folder,
            event_bus=self.event_bus,
        )
        self.navigator = FolderNavigator(storage, self.selection, self.config.storage.base_folder)

        self._running = True
        logger.info(
            f"FeedView started (storage: {storage.provider_name}/{storage.bucket}, "
            f"analysis: {'on' if self.pipeline.enabled else 'off'})"
        )
        return True

    async def stop(self) -> bool:
        """Stop polling, cancel analysis and release providers.

        Returns:
            True if stopped, False if not running
        """
        if not self._running:
            logger.warning("Orchestrator not running")
            return False

        # Stops the poller and resets the slideshow; neither runs without a selection
        self.selection.clear_selection()
        await self.pipeline.shutdown()

        if self._storage_provider:
            self._storage_provider.cleanup()
        if self._inference_provider:
            self._inference_provider.cleanup()

        self._running = False
        logger.info("FeedView stopped")
        return True

    def is_running(self) -> bool:
        return self._running

    # User operations

    def change_selection(self, level1: str, level2: str, level3: str) -> bool:
        self._require_running()
        return self.selection.change_selection(level1, level2, level3)

    async def select(self, level1: str, level2: str, level3: Optional[str] = None) -> Optional[Selection]:
        """Select a feed, resolving a missing date to the latest folder.

        Returns:
            The applied selection, or None if no date folder exists
        """
        self._require_running()
        if level3:
            self.navigator.level1, self.navigator.level2 = level1, level2
            return self.navigator.choose_level3(level3)

        self.navigator.level1 = level1
        return await self.navigator.choose_level2(level2)

    def next(self) -> bool:
        self._require_running()
        return self.controller.next()

    def previous(self) -> bool:
        self._require_running()
        return self.controller.previous()

    def toggle_auto_play(self) -> bool:
        self._require_running()
        return self.controller.toggle_auto_play()

    def handle_key(self, key: str, text_input_focused: bool = False) -> bool:
        self._require_running()
        return self.controller.handle_key(key, text_input_focused)

    def get_statistics(self) -> dict:
        """Get statistics from all components.

        Returns:
            Dictionary containing statistics
        """
        stats = {
            "running": self._running,
            "selection": None,
            "feed": None,
            "slideshow": None,
            "analysis": None,
        }

        if self.selection and self.selection.selection:
            stats["selection"] = str(self.selection.selection)
        if self.poller:
            stats["feed"] = self.poller.get_stats()
        if self.controller:
            stats["slideshow"] = self.controller.get_stats()
        if self.pipeline:
            stats["analysis"] = self.pipeline.get_stats()

        return stats

    def _require_running(self) -> None:
        if not self._running:
            raise RuntimeError("FeedView is not running; call start() first")
