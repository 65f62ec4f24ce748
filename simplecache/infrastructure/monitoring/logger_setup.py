"""Centralized logging configuration for simplecache.

Log records go to stderr so that command output on stdout stays pipeable,
and optionally to a size-rotated log file. Level, format and file come from
the ``logging.*`` configuration keys (see ``logging_options``).
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional

from simplecache.domain.exceptions import InvalidArgumentError
from simplecache.infrastructure.config.settings import get_config

logger = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3


def level_from_name(name: Optional[str], default: int = DEFAULT_LOG_LEVEL) -> int:
    """Maps 'debug'/'INFO'/... to a logging level, falling back to `default`."""
    if not name:
        return default
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


def _count_option(key: str, default: int) -> int:
    value = get_config(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError(f"Invalid {key}: {value!r}. Expected a non-negative integer.")
    return value


def logging_options(verbose: bool = False) -> Dict[str, Any]:
    """Reads setup_logging arguments from configuration.

    Keys: logging.level, logging.format, logging.file, logging.max_bytes and
    logging.backup_count. `verbose` forces DEBUG.
    """
    return {
        "log_level": logging.DEBUG if verbose else level_from_name(get_config("logging.level")),
        "log_format": get_config("logging.format") or DEFAULT_LOG_FORMAT,
        "log_file": get_config("logging.file"),
        "max_bytes": _count_option("logging.max_bytes", DEFAULT_MAX_BYTES),
        "backup_count": _count_option("logging.backup_count", DEFAULT_BACKUP_COUNT),
    }


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> Optional[logging.Handler]:
    try:
        return RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8')
    except OSError as e:
        # Console logging still works; the failure is reported through it
        logger.error(f"Failed to set up file logging to {log_file}: {e}")
        return None


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> List[logging.Handler]:
    """Replaces the root logger's handlers with a stderr handler and an optional file handler.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Optional path to a log file, rotated at `max_bytes`.
        max_bytes: Size at which the log file is rotated; 0 disables rotation.
        backup_count: Number of rotated files to keep.

    Returns:
        The handlers now attached to the root logger.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        file_handler = _file_handler(str(log_file), max_bytes, backup_count)
        if file_handler is not None:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            handlers.append(file_handler)
            logger.info(f"Logging to file: {log_file}")

    logger.debug(f"Logging configured. Level={logging.getLevelName(log_level)}")
    return handlers
