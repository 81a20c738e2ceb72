"""Logging setup for pi-manager.

Every module logs through logging.getLogger(__name__), so all records land
under the "pimanager" logger configured here: one rotating file plus an
optional console stream, sharing a single format.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "pimanager.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = "INFO"

# Step output quoted in a log line is cut at this many characters
MAX_LOGGED_OUTPUT = 5000

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: str | None) -> tuple[str, int]:
    if level is None:
        level = os.environ.get("PIMANAGER_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    return level, getattr(logging, level.upper(), logging.INFO)


def _build_handlers(
    log_path: Path, max_bytes: int, backup_count: int, console: bool
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    return handlers


def setup_logging(
    log_dir: str | Path | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    level: str | None = None,
    console: bool = True,
) -> logging.Logger:
    """Attach the file and console handlers to the pimanager logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        log_dir: Directory for the log file, created if missing. Falls back to
            PIMANAGER_LOG_DIR, then to 'logs'.
        log_file: Log file name inside log_dir.
        max_bytes: Size at which the file is rotated.
        backup_count: Number of rotated files to keep.
        level: Level name such as DEBUG or WARNING. Falls back to
            PIMANAGER_LOG_LEVEL, then to INFO. Unknown names mean INFO.
        console: Whether to also write to stderr.

    Returns:
        The pimanager logger.
    """
    if log_dir is None:
        log_dir = os.environ.get("PIMANAGER_LOG_DIR", DEFAULT_LOG_DIR)
    log_path = Path(log_dir) / log_file
    log_path.parent.mkdir(parents=True, exist_ok=True)

    level, log_level = _resolve_level(level)

    logger = logging.getLogger("pimanager")
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in _build_handlers(log_path, max_bytes, backup_count, console):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.info("pi-manager logging initialized (level=%s, file=%s)", level, log_path)
    return logger


def truncate_output(output: str, max_length: int = MAX_LOGGED_OUTPUT) -> str:
    """Shorten step output before it is quoted in a log line.

    The head of the output is kept and the dropped length is noted.
    """
    if len(output) <= max_length:
        return output
    return output[:max_length] + f"\n... [truncated, {len(output) - max_length} more chars]"
