"""Per-user configuration persistence."""

import logging
import re
import yaml
from pathlib import Path
from typing import Optional

from core.config.config_loader import ConfigInvalid
from core.models.config import FeedViewConfig

logger = logging.getLogger(__name__)

# Never written to disk; supplied through the environment instead
SECRET_KEYS = ("access_key", "secret_key")


class UserConfigStore:
    """Stores one configuration file per user.

    Files live under ``~/.config/feedview/users/<user_id>.yaml``. Storage
    credentials are stripped before saving and must come from the
    environment (see ``ConfigLoader.apply_env_overrides``).
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize the store.

        Args:
            config_dir: Configuration directory (defaults to ~/.config/feedview)
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "feedview"

        self.config_dir = Path(config_dir)
        self.users_dir = self.config_dir / "users"
        self.users_dir.mkdir(parents=True, exist_ok=True)

    def load_config(self, user_id: str, defaults: Optional[FeedViewConfig] = None) -> FeedViewConfig:
        """Load a user's configuration.

        Args:
            user_id: User identifier
            defaults: Configuration to use for anything the user never saved

        Returns:
            The user's configuration (defaults if nothing was saved yet)

        Raises:
            ConfigInvalid: If the stored file is unreadable
        """
        base = (defaults or FeedViewConfig()).to_dict()
        path = self._path_for(user_id)

        if not path.exists():
            logger.info(f"No saved configuration for user {user_id}, using defaults")
            return FeedViewConfig.from_dict(base)

        try:
            with open(path, 'r') as f:
                stored = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigInvalid(f"Failed to load configuration for user {user_id}: {e}")

        for section, values in stored.items():
            if isinstance(values, dict) and isinstance(base.get(section), dict):
                base[section].update(values)

        logger.info(f"Loaded configuration for user {user_id}")
        return FeedViewConfig.from_dict(base)

    def save_config(self, user_id: str, config: FeedViewConfig) -> Path:
        """Save a user's configuration without credentials.

        Args:
            user_id: User identifier
            config: Configuration to save

        Returns:
            Path of the written file
        """
        data = config.to_dict()
        for key in SECRET_KEYS:
            data["storage"].pop(key, None)

        path = self._path_for(user_id)
        with open(path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved configuration for user {user_id}: {path}")
        return path

    def _path_for(self, user_id: str) -> Path:
        safe_id = re.sub(r"[^A-Za-z0-9_.@-]", "_", user_id or "default")
        return self.users_dir / f"{safe_id}.yaml"
