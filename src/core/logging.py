"""
Logging configuration for the exposure tracker.

Services and API modules obtain their logger through ``setup_logging`` at import
time; the pure scoring modules use ``logging.getLogger(__name__)`` and inherit
whatever the hosting process configured.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from src.core.config import get_settings

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(
    name: str = "exposure_tracker",
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file. If None, uses settings value. An empty
            ``LOG_FILE_PATH`` disables the file handler.

    Returns:
        Configured logger instance
    """
    settings = get_settings()

    if level is None:
        level = settings.log_level

    if log_file is None:
        log_file = settings.log_file_path

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Re-running setup (reloads, tests) must not stack handlers
    logger.handlers.clear()
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(fmt=SIMPLE_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(console_handler)

    if log_file and str(log_file) not in ("", "."):
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(fmt=DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(file_handler)

    return logger
