"""Configuration data models."""

from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict

from core.models.slideshow import SlideshowMode


def _section(cls, data: Dict[str, Any]):
    """Build a config dataclass from a dict, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class StorageConfig:
    """Configuration for the object storage provider."""
    provider: str = "s3"
    endpoint: str = "192.168.86.3:8031"
    access_key: str = ""
    secret_key: str = ""
    region: str = "us-west"
    secure: bool = False
    bucket: str = ""
    base_folder: str = ""
    base_path: str = "/tmp/feedview"  # filesystem provider root
    presign_expiry_seconds: int = 3600


@dataclass
class PollingConfig:
    """Configuration for the image feed poller."""
    enabled: bool = True
    interval_seconds: float = 30.0


@dataclass
class SlideshowConfig:
    """Configuration for the slideshow controller."""
    slide_duration_seconds: float = 10.0
    auto_advance: bool = True
    show_manual_controls: bool = True
    mode: str = SlideshowMode.LATEST_ONLY.value


@dataclass
class ModelConfig:
    """Model parameters sent with every inference call."""
    model_name: str = "Generic Detection Model"
    confidence: float = 0.4
    iou: float = 0.5


@dataclass
class AnalysisConfig:
    """Configuration for the AI analysis step."""
    enabled: bool = False
    provider: str = "gradio"
    endpoint: str = "https://vision.deltathings.com/"
    timeout_seconds: float = 60.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "/tmp/feedview/logs/feedview.log"
    log_to_console: bool = True
    console_colors: bool = True


@dataclass
class FeedViewConfig:
    """Complete FeedView configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    slideshow: SlideshowConfig = field(default_factory=SlideshowConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedViewConfig":
        """Build a config from a (possibly partial) nested dictionary."""
        data = data or {}
        return cls(
            storage=_section(StorageConfig, data.get("storage")),
            polling=_section(PollingConfig, data.get("polling")),
            slideshow=_section(SlideshowConfig, data.get("slideshow")),
            model=_section(ModelConfig, data.get("model")),
            analysis=_section(AnalysisConfig, data.get("analysis")),
            logging=_section(LoggingConfig, data.get("logging")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def slideshow_mode(self) -> SlideshowMode:
        return SlideshowMode.parse(self.slideshow.mode)
