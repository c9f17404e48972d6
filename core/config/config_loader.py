"""Configuration loading and validation."""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from dotenv import load_dotenv

from core.models.config import FeedViewConfig
from core.models.slideshow import SlideshowMode

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "default.yaml"

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "FEEDVIEW_STORAGE_ENDPOINT": "storage.endpoint",
    "FEEDVIEW_ACCESS_KEY": "storage.access_key",
    "FEEDVIEW_SECRET_KEY": "storage.secret_key",
    "FEEDVIEW_BUCKET": "storage.bucket",
    "FEEDVIEW_BASE_FOLDER": "storage.base_folder",
    "FEEDVIEW_ANALYSIS_ENDPOINT": "analysis.endpoint",
    "FEEDVIEW_LOG_LEVEL": "logging.level",
}


class ConfigInvalid(Exception):
    """Exception raised when configuration is missing or invalid.

    Attributes:
        problems: One human-readable line per invalid setting
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message)
        self.problems = problems or []


class ConfigLoader:
    """Configuration loader for FeedView."""

    def __init__(self):
        """Initialize the config loader."""
        self.config: Optional[Dict[str, Any]] = None

    def load_from_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from YAML file.

        Missing sections and keys fall back to the defaults.

        Args:
            config_path: Path to config file

        Returns:
            Dictionary containing configuration

        Raises:
            ConfigInvalid: If config file not found or invalid
        """
        path = Path(config_path)

        if not path.exists():
            raise ConfigInvalid(f"Config file not found: {path}")

        logger.info(f"Loading configuration from: {path}")

        try:
            with open(path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigInvalid(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigInvalid(f"Error reading config file: {e}")

        if not isinstance(loaded, dict):
            raise ConfigInvalid(f"Config file must contain a mapping: {path}")

        self.config = FeedViewConfig.from_dict(loaded).to_dict()
        logger.info("Configuration loaded successfully")
        return self.config

    def load_defaults(self) -> Dict[str, Any]:
        """Load default configuration.

        Returns:
            Dictionary containing default configuration
        """
        if DEFAULT_CONFIG_PATH.exists():
            return self.load_from_file(str(DEFAULT_CONFIG_PATH))

        self.config = FeedViewConfig().to_dict()
        logger.info("Loaded default configuration")
        return self.config

    def apply_env_overrides(self, env_file: Optional[str] = None) -> Dict[str, Any]:
        """Overlay settings from the environment and an optional .env file.

        Credentials are expected to come from here rather than from YAML.

        Args:
            env_file: Path to a .env file (None = search from the working directory)

        Returns:
            Updated configuration dictionary
        """
        if self.config is None:
            self.load_defaults()

        load_dotenv(dotenv_path=env_file)

        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                self.set(key, value)
                logger.debug(f"Config {key} overridden from {env_name}")

        return self.config

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: Configuration key (dot-separated for nested keys)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if not self.config:
            return default

        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value.

        Args:
            key: Configuration key (dot-separated for nested keys)
            value: New value
        """
        if self.config is None:
            self.load_defaults()

        *parents, last = key.split('.')
        section = self.config
        for k in parents:
            section = section.setdefault(k, {})
        section[last] = value

    def to_config(self) -> FeedViewConfig:
        """Build the typed configuration object.

        Returns:
            FeedViewConfig built from the loaded dictionary
        """
        if self.config is None:
            self.load_defaults()
        return FeedViewConfig.from_dict(self.config)

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path where to save the config

        Raises:
            ConfigInvalid: If save fails
        """
        if not self.config:
            raise ConfigInvalid("No configuration loaded")

        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(path, 'w') as f:
                yaml.dump(self.config, f, default_flow_style=False, sort_keys=False)
            logger.info(f"Configuration saved to: {path}")
        except OSError as e:
            raise ConfigInvalid(f"Error saving config file: {e}")


def validate_config(
    config: FeedViewConfig,
    storage_providers: Optional[List[str]] = None,
    inference_providers: Optional[List[str]] = None
) -> None:
    """Check that a configuration can start the poller and the pipeline.

    Args:
        config: Configuration to check
        storage_providers: Registered storage provider names (None = don't check)
        inference_providers: Registered inference provider names (None = don't check)

    Raises:
        ConfigInvalid: Listing every problem found
    """
    problems = []

    if not config.storage.bucket:
        problems.append("storage.bucket is required")
    if storage_providers is not None and config.storage.provider not in storage_providers:
        problems.append(f"unknown storage.provider: {config.storage.provider}")
    if config.storage.provider == "s3" and not (config.storage.access_key and config.storage.secret_key):
        problems.append("storage.access_key and storage.secret_key are required for s3")

    if _as_float(config.polling.interval_seconds) <= 0:
        problems.append("polling.interval_seconds must be positive")
    if _as_float(config.slideshow.slide_duration_seconds) <= 0:
        problems.append("slideshow.slide_duration_seconds must be positive")

    try:
        SlideshowMode.parse(config.slideshow.mode)
    except ValueError as e:
        problems.append(str(e))

    for name in ("confidence", "iou"):
        value = _as_float(getattr(config.model, name))
        if not 0.0 <= value <= 1.0:
            problems.append(f"model.{name} must be between 0 and 1")

    if config.analysis.enabled:
        if not config.analysis.endpoint:
            problems.append("analysis.endpoint is required when analysis is enabled")
        if inference_providers is not None and config.analysis.provider not in inference_providers:
            problems.append(f"unknown analysis.provider: {config.analysis.provider}")

    if problems:
        raise ConfigInvalid("Invalid configuration: " + "; ".join(problems), problems)


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return -1.0
