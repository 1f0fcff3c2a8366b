"""Logging configuration for tiercache.

Library modules log through ``get_logger(__name__)``; nothing is emitted until
an application calls ``setup_logging``.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER = "tiercache"

LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def setup_logging(
    log_dir: Path,
    level: int = logging.INFO,
    max_bytes: int = LOG_MAX_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
) -> logging.Logger:
    """Set up tiercache logging to a size-rotated file.

    An existing log already past ``max_bytes`` is rolled over before the
    first record is written.

    Args:
        log_dir: Directory to store log files
        level: Minimum level written to the log file
        max_bytes: Size at which tiercache.log is rotated
        backup_count: Number of rotated files to keep

    Returns:
        Configured root tiercache logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tiercache.log"

    file_handler = RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    if max_bytes > 0 and log_file.stat().st_size >= max_bytes:
        file_handler.doRollover()
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.addHandler(file_handler)

    logger.info(f"Logging to {log_file}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the tiercache hierarchy.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
