"""Logging configuration for the display controller."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path

from goldfinger.config import LoggingConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_FILE_NAME = "goldfinger.log"
LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 3

# Third-party loggers that are too chatty at DEBUG on a Pi
NOISY_LOGGERS = ("urllib3", "PIL")


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger from config.

    ``GOLDFINGER_LOG_LEVEL`` overrides the configured level.
    """
    level_name = os.getenv("GOLDFINGER_LOG_LEVEL", "").upper() or config.level
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {level_name}")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    if not root_logger.handlers:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    if config.log_dir:
        log_dir = Path(config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


__all__ = ["configure_logging"]
