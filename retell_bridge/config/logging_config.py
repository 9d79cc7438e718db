"""
Logging setup for the Retell bridge.

Everything the bridge logs goes through the ``retell_bridge`` logger, which
writes to stdout and to a size-rotated file under ``logs/``. The level comes
from the caller or from ``LOG_LEVEL`` at the time of configuration, so a level
exported by ``run.py`` survives the application module configuring again on
import.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from retell_bridge.config.constants import LOGGER_NAME

DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "retell_bridge.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def resolve_log_level(level: Optional[str] = None) -> int:
    """Map a level name (or ``LOG_LEVEL``) to a logging level; unknown names mean INFO."""
    name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the bridge logger.

    Handlers from an earlier call are replaced, so configuring twice does not
    duplicate output.

    Args:
        level: Level name; defaults to the LOG_LEVEL environment variable

    Returns:
        logging.Logger: The configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_log_level(level))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_target = "stdout"
    try:
        LOG_DIR.mkdir(exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        log_target = f"stdout and {LOG_FILE}"
    except OSError as e:
        logger.warning(f"Could not set up file logging in {LOG_DIR}: {e}")

    logger.propagate = False

    logger.info(f"Logging at {logging.getLevelName(logger.level)} to {log_target}")
    return logger
