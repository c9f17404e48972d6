"""Data models for slideshow, display and analysis state."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import time


class SlideshowMode(Enum):
    """How the slideshow chooses the current image.

    CONTINUOUS: Cycle through every image, optionally on a timer
    LATEST_ONLY: Always jump to the newest image when the feed grows
    """
    CONTINUOUS = "continuous"
    LATEST_ONLY = "latest_only"

    @classmethod
    def parse(cls, value: Any) -> "SlideshowMode":
        if isinstance(value, cls):
            return value
        s = str(value or "").strip().lower().replace("-", "_")
        for mode in cls:
            if mode.value == s:
                return mode
        raise ValueError(f"Unsupported slideshow mode: {value!r}")


@dataclass
class SlideshowState:
    """Position and playback state of the slideshow.

    Attributes:
        current_index: Index into the image list, None while there are no images
        mode: Continuous cycling or latest-only pinning
        is_auto_playing: Whether the auto-advance timer is running
        slide_duration_seconds: Time each image stays up while auto-playing
    """
    current_index: Optional[int] = None
    mode: SlideshowMode = SlideshowMode.LATEST_ONLY
    is_auto_playing: bool = False
    slide_duration_seconds: float = 10.0

    @property
    def is_empty(self) -> bool:
        return self.current_index is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_index": self.current_index,
            "mode": self.mode.value,
            "is_auto_playing": self.is_auto_playing,
            "slide_duration_seconds": self.slide_duration_seconds,
        }


@dataclass
class DisplayState:
    """What the split view is currently showing.

    Attributes:
        key: Key of the image on screen
        raw_ref: URL or path of the original image (left pane)
        processed_ref: URL or path of the analyzed image (right pane)
        analysis_text: Markdown report returned by the model
        error: User-visible error shown in place of the analysis
        placeholder: Explanatory text when analysis is skipped
        is_loading: Analysis requested but not yet settled
    """
    key: Optional[str] = None
    raw_ref: Optional[str] = None
    processed_ref: Optional[str] = None
    analysis_text: Optional[str] = None
    error: Optional[str] = None
    placeholder: Optional[str] = None
    is_loading: bool = False

    def clear_analysis(self) -> None:
        """Forget the right-hand pane but keep the original image."""
        self.processed_ref = None
        self.analysis_text = None
        self.error = None
        self.placeholder = None
        self.is_loading = False

    def clear(self) -> None:
        self.key = None
        self.raw_ref = None
        self.clear_analysis()


@dataclass(eq=False)
class AnalysisRequest:
    """A single analysis run for one image.

    Requests compare by identity: a second request for the same key is a
    different request, and only the live one may update the display.

    Attributes:
        for_key: Image key being analyzed
        started_at: Unix timestamp when the request was made
        done: Set once the run has settled (applied, discarded or failed)
    """
    for_key: str
    started_at: float = field(default_factory=time.time)
    done: bool = False
