"""Logging setup shared by the CLI and the orchestrator."""

import logging
from pathlib import Path

import coloredlogs

from core.models.config import LoggingConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: LoggingConfig = None, verbose: bool = False) -> None:
    """Configure the root logger.

    Args:
        config: Logging configuration (None = defaults)
        verbose: Force DEBUG level
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if verbose else getattr(logging, str(config.level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if config.log_to_console:
        if config.console_colors:
            coloredlogs.install(level=level, fmt=LOG_FORMAT, logger=root)
        else:
            logging.basicConfig(level=level, format=LOG_FORMAT)

    if config.log_to_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    # boto3 and urllib3 are chatty at DEBUG
    for noisy in ("botocore", "boto3", "urllib3", "s3transfer", "httpx"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
