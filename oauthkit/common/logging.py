"""
Logging setup.

Configures loguru sinks for applications embedding the OAuth2 engine.
"""

import os
import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "provider={extra[provider]} | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | provider={extra[provider]} | {name}:{function}:{line} | {message}"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure loguru logging.

    Args:
        level: Minimum level; defaults to settings.log_level
        log_file: Optional file sink path; defaults to settings.log_file
    """
    from oauthkit.core.settings import settings

    level = (level or settings.log_level).upper()
    log_file = log_file or settings.log_file

    logger.configure(extra={"provider": "-"})

    # Drop the default handler
    logger.remove()

    logger.add(sink=sys.stderr, format=LOG_FORMAT, level=level, colorize=True)

    if log_file:
        try:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            logger.add(
                log_file,
                rotation="50 MB",
                retention="30 days",
                compression="zip",
                format=FILE_FORMAT,
                level=level,
            )
        except (PermissionError, OSError):
            # Console only when the file cannot be created
            logger.warning(f"Cannot open log file {log_file}, logging to console only")

    logger.debug("Logging configured")
