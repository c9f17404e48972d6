"""Slideshow controller: the state machine behind the split view."""

import logging
from typing import List, Optional

from core.bus.event_bus import EventBus
from core.interfaces.events import Event, EventType
from core.models.config import SlideshowConfig
from core.models.image import ImageDescriptor, sort_newest_first
from core.models.slideshow import DisplayState, SlideshowMode, SlideshowState
from core.scheduling.timer import SingleShotTimer

logger = logging.getLogger(__name__)

# Key names as reported by browsers and terminals
KEY_BINDINGS = {
    "left": "previous",
    "arrowleft": "previous",
    "right": "next",
    "arrowright": "next",
    "space": "toggle",
    " ": "toggle",
    "spacebar": "toggle",
}


class SlideshowController:
    """Owns the image list, the current position and the display state.

    States: Empty (no images) and Displaying(index). Every input reaches
    the controller through a transition method: ``on_list_loaded`` and
    ``on_list_grew`` from the poller, ``next``/``previous``/
    ``toggle_auto_play``/``handle_key`` from the user, ``reset`` from the
    selection manager, and the ``show_*`` sink methods from the analysis
    pipeline. Nothing else writes this state.

    The auto-advance timer is a single ``SingleShotTimer``; every
    transition that changes position or playback cancels it before
    scheduling again.
    """

    def __init__(
        self,
        pipeline,
        config: Optional[SlideshowConfig] = None,
        event_bus: Optional[EventBus] = None
    ):
        """Initialize the controller.

        Args:
            pipeline: Analysis pipeline; the controller becomes its display sink
            config: Slideshow configuration (None = defaults)
            event_bus: Event bus for publishing events (None = shared bus)
        """
        config = config or SlideshowConfig()

        self._pipeline = pipeline
        self._event_bus = event_bus or EventBus()
        self._auto_advance = bool(config.auto_advance)

        self._images: List[ImageDescriptor] = []
        self._state = SlideshowState(
            mode=SlideshowMode.parse(config.mode),
            slide_duration_seconds=float(config.slide_duration_seconds),
        )
        self._display = DisplayState()
        self._timer = SingleShotTimer("auto-advance")

        self._user_paused = False
        self._missing_streak = 0

        pipeline.set_sink(self)
        logger.info(
            f"SlideshowController initialized in {self._state.mode.value} mode "
            f"(slide duration: {self._state.slide_duration_seconds}s)"
        )

    # State access

    @property
    def state(self) -> SlideshowState:
        return self._state

    @property
    def display(self) -> DisplayState:
        return self._display

    @property
    def images(self) -> List[ImageDescriptor]:
        return list(self._images)

    @property
    def current_image(self) -> Optional[ImageDescriptor]:
        if self._state.current_index is None or not self._images:
            return None
        return self._images[self._state.current_index]

    @property
    def timer_active(self) -> bool:
        return self._timer.active

    # Feed transitions

    def on_list_loaded(self, images: List[ImageDescriptor]) -> None:
        """First non-empty listing for the current selection.

        Args:
            images: Image list (any order; kept newest first)
        """
        images = sort_newest_first(images)
        if not images:
            self.reset()
            return

        if not self._state.is_empty:
            self.on_list_grew(images)
            return

        self._images = images
        self._state.current_index = 0
        self._user_paused = False
        self._missing_streak = 0
        logger.info(f"Slideshow loaded {len(images)} images")

        self._publish_index()
        self._pipeline.process(images[0].key)

        if self._auto_advance and self._can_auto_play():
            self._set_auto_play(True)

    def on_list_grew(self, images: List[ImageDescriptor]) -> None:
        """A listing with more images than the last one arrived.

        Latest-only mode jumps to the newest image and stops auto-play.
        Continuous mode keeps showing the same image at its new index.

        Args:
            images: Image list (any order; kept newest first)
        """
        images = sort_newest_first(images)
        if not images:
            self.reset()
            return

        if self._state.is_empty:
            self.on_list_loaded(images)
            return

        previous = self.current_image
        self._images = images

        if self._state.mode == SlideshowMode.LATEST_ONLY:
            self._set_auto_play(False)
            self._state.current_index = 0
            self._display.clear_analysis()
            logger.info(f"New image in feed, showing latest: {images[0].key}")
            self._publish_index()
            self._pipeline.process(images[0].key)
            return

        index = self._index_of(previous.key) if previous else None
        if index is None:
            index = min(self._state.current_index, len(images) - 1)
        self._state.current_index = index
        self._publish_index()

        if previous is None or images[index].key != previous.key:
            self._pipeline.process(images[index].key)

        if self._auto_advance and not self._user_paused and not self._state.is_auto_playing:
            self._set_auto_play(True)

    # User transitions

    def next(self) -> bool:
        """Show the next (older) image, wrapping to the newest.

        Returns:
            True if the position changed, False for a no-op
        """
        return self._step(1)

    def previous(self) -> bool:
        """Show the previous (newer) image, wrapping to the oldest.

        Returns:
            True if the position changed, False for a no-op
        """
        return self._step(-1)

    def toggle_auto_play(self) -> bool:
        """Start or stop auto-advance.

        Only has an effect in continuous mode with more than one image.

        Returns:
            Whether auto-play is on afterwards
        """
        if not self._can_auto_play():
            logger.debug("Auto-play toggle ignored")
            return self._state.is_auto_playing

        enabled = not self._state.is_auto_playing
        self._user_paused = not enabled
        self._set_auto_play(enabled)
        return enabled

    def handle_key(self, key: str, text_input_focused: bool = False) -> bool:
        """Map a key press to a navigation command.

        Args:
            key: Key name ("ArrowLeft", "right", " ", ...)
            text_input_focused: True while the user is typing somewhere

        Returns:
            True if the key was consumed
        """
        if text_input_focused:
            return False

        action = KEY_BINDINGS.get(str(key).lower())
        if action == "previous":
            self.previous()
        elif action == "next":
            self.next()
        elif action == "toggle":
            self.toggle_auto_play()
        else:
            return False
        return True

    def set_mode(self, mode) -> None:
        """Switch between continuous and latest-only.

        Args:
            mode: SlideshowMode or its string value
        """
        mode = SlideshowMode.parse(mode)
        if mode == self._state.mode:
            return

        self._state.mode = mode
        logger.info(f"Slideshow mode: {mode.value}")

        if mode == SlideshowMode.LATEST_ONLY:
            self._set_auto_play(False)
            if self._images and self._state.current_index != 0:
                self._move_to(0)
        elif self._auto_advance and not self._user_paused:
            self._set_auto_play(True)

    def set_slide_duration(self, seconds: float) -> None:
        """Change how long each image stays up while auto-playing."""
        seconds = float(seconds)
        if seconds <= 0:
            raise ValueError("Slide duration must be positive")

        self._state.slide_duration_seconds = seconds
        if self._state.is_auto_playing:
            self._schedule_advance()

    def reset(self) -> None:
        """Drop all images and return to Empty."""
        self._timer.cancel()
        self._images = []
        self._state.current_index = None
        self._state.is_auto_playing = False
        self._user_paused = False
        self._missing_streak = 0
        self._clear_display()
        logger.debug("Slideshow reset")

    # Display sink (called by the analysis pipeline for the live request)

    def show_raw(self, key: str, raw_ref: Optional[str]) -> None:
        if not self._is_current(key):
            return

        self._display.key = key
        self._display.raw_ref = raw_ref
        self._display.clear_analysis()
        self._display.is_loading = True
        self._publish(EventType.IMAGE_READY, {"key": key, "raw_ref": raw_ref})

    def show_analysis(self, key: str, processed_ref: Optional[str], analysis_text: str) -> None:
        if not self._is_current(key):
            return

        self._missing_streak = 0
        self._display.clear_analysis()
        self._display.processed_ref = processed_ref
        self._display.analysis_text = analysis_text
        self._publish(EventType.ANALYSIS_READY, {
            "key": key,
            "processed_ref": processed_ref,
            "analysis_text": analysis_text,
        })

    def show_analysis_error(self, key: str, message: str) -> None:
        if not self._is_current(key):
            return

        self._display.clear_analysis()
        self._display.error = message
        self._publish(EventType.ANALYSIS_ERROR, {"key": key, "message": message})

    def show_analysis_skipped(self, key: str, message: str) -> None:
        if not self._is_current(key):
            return

        self._display.clear_analysis()
        self._display.placeholder = message
        self._publish(EventType.ANALYSIS_SKIPPED, {"key": key, "message": message})

    def on_image_missing(self, key: str, message: str) -> None:
        """The current image vanished from storage: advance, or clear.

        Advancing stops after one full pass of missing images.
        """
        if not self._is_current(key):
            return

        self._missing_streak += 1
        self.show_analysis_error(key, message)

        if len(self._images) > 1 and self._missing_streak < len(self._images):
            self._move_to((self._state.current_index + 1) % len(self._images), keep_streak=True)
        else:
            self._missing_streak = 0
            self._clear_display()

    def get_stats(self) -> dict:
        """Get slideshow statistics.

        Returns:
            Dictionary containing state and display information
        """
        current = self.current_image
        return {
            **self._state.to_dict(),
            "total": len(self._images),
            "current_key": current.key if current else None,
            "timer_active": self._timer.active,
            "advance_count": self._timer.fire_count,
            "display": {
                "raw_ref": self._display.raw_ref,
                "processed_ref": self._display.processed_ref,
                "has_analysis": self._display.analysis_text is not None,
                "error": self._display.error,
                "placeholder": self._display.placeholder,
                "is_loading": self._display.is_loading,
            },
        }

    # Internals

    def _step(self, delta: int) -> bool:
        total = len(self._images)
        if total <= 1 or self._state.is_empty:
            logger.debug("Navigation ignored: fewer than two images")
            return False

        self._move_to((self._state.current_index + delta) % total)
        return True

    def _move_to(self, index: int, keep_streak: bool = False) -> None:
        if not keep_streak:
            self._missing_streak = 0

        self._state.current_index = index
        self._publish_index()
        self._pipeline.process(self._images[index].key)

        if self._state.is_auto_playing:
            self._schedule_advance()
        else:
            self._timer.cancel()

    def _can_auto_play(self) -> bool:
        return self._state.mode == SlideshowMode.CONTINUOUS and len(self._images) > 1

    def _set_auto_play(self, enabled: bool) -> None:
        enabled = enabled and self._can_auto_play()
        changed = enabled != self._state.is_auto_playing
        self._state.is_auto_playing = enabled

        if not enabled:
            self._timer.cancel()
        elif changed or not self._timer.active:
            self._schedule_advance()

        if changed:
            logger.info(f"Auto-play {'started' if enabled else 'stopped'}")
            self._publish(EventType.AUTOPLAY_CHANGED, {"enabled": enabled})

    def _schedule_advance(self) -> None:
        self._timer.schedule(self._state.slide_duration_seconds, self._on_advance_timer)

    def _on_advance_timer(self) -> None:
        if not (self._state.is_auto_playing and self._can_auto_play()):
            return

        try:
            self.next()
        except Exception as e:
            logger.error(f"Auto-advance failed: {e}", exc_info=True)
            if self._state.is_auto_playing and not self._timer.active:
                self._schedule_advance()

    def _clear_display(self) -> None:
        self._display.clear()
        self._publish(EventType.DISPLAY_CLEARED, {})

    def _publish_index(self) -> None:
        current = self.current_image
        self._publish(EventType.INDEX_CHANGED, {
            "index": self._state.current_index,
            "total": len(self._images),
            "key": current.key if current else None,
        })

    def _publish(self, event_type: EventType, data: dict) -> None:
        self._event_bus.publish(Event(type=event_type, data=data, source="slideshow_controller"))

    def _index_of(self, key: str) -> Optional[int]:
        for index, image in enumerate(self._images):
            if image.key == key:
                return index
        return None

    def _is_current(self, key: str) -> bool:
        current = self.current_image
        return current is not None and current.key == key
