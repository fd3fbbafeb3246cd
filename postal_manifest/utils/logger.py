"""
Logging Configuration Module.

Every module logs under the ``postal_manifest`` namespace. The entry
point configures that namespace once; modules only ask for a child
logger:

    from postal_manifest.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Appended unit K3Z9QD")

Console output is coloured by level with colorama. An optional rotating
file log receives the same records without colour codes.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

import colorama
from colorama import Fore, Style

colorama.init()

APP_LOGGER_NAME = "postal_manifest"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Wraps each formatted record in the colour for its level."""

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        return f"{color}{text}{Style.RESET_ALL}" if color else text


def _level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    # getLevelName maps known names to numbers, anything else to a string
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def _console_handler(level: int, fmt: str, datefmt: str, colorize: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    formatter_cls = ColoredFormatter if colorize else logging.Formatter
    handler.setFormatter(formatter_cls(fmt, datefmt=datefmt))
    return handler


def _file_handler(
    path: Union[str, Path],
    level: int,
    fmt: str,
    datefmt: str,
    max_bytes: int,
    backup_count: int
) -> logging.Handler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def setup_logger(
    level: Union[str, int] = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    colorize: bool = True
) -> logging.Logger:
    """
    Configure the ``postal_manifest`` logger. Call once at startup.

    Calling it again replaces the previous handlers, so reconfiguring
    (e.g. after ``--debug``) never duplicates output.

    Args:
        level: Level name or number applied to the logger and its handlers.
        log_format: Record format; defaults to ``DEFAULT_FORMAT``.
        date_format: Timestamp format; defaults to ``DEFAULT_DATE_FORMAT``.
        log_file: Rotating log file path, or None for console only.
        max_bytes: Rotation threshold for the log file.
        backup_count: Rotated files kept.
        colorize: Colour console records by level.

    Returns:
        The configured application logger.
    """
    numeric_level = _level(level)
    fmt = log_format or DEFAULT_FORMAT
    datefmt = date_format or DEFAULT_DATE_FORMAT

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(numeric_level)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    app_logger.addHandler(_console_handler(numeric_level, fmt, datefmt, colorize))
    if log_file:
        app_logger.addHandler(
            _file_handler(log_file, numeric_level, fmt, datefmt, max_bytes, backup_count)
        )
    app_logger.propagate = False

    app_logger.debug("Logging initialized")
    return app_logger


def set_level(level: Union[str, int]) -> None:
    """Change the level of the application logger and all its handlers."""
    numeric_level = _level(level)
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(numeric_level)
    for handler in app_logger.handlers:
        handler.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """
    Child logger of the application namespace.

    ``get_logger("postal_manifest.session.aggregator")`` and
    ``get_logger("main")`` both end up under ``postal_manifest``.
    """
    if name == APP_LOGGER_NAME or name.startswith(APP_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """Configure logging from the ``logging.*`` settings."""
    from config import PROJECT_ROOT, get_config

    log_file = None
    if get_config("logging.file.enabled", False):
        log_file = Path(get_config("logging.file.path", "logs/postal_manifest.log"))
        if not log_file.is_absolute():
            log_file = PROJECT_ROOT / log_file

    return setup_logger(
        level=get_config("logging.level", "INFO"),
        log_format=get_config("logging.format"),
        date_format=get_config("logging.date_format"),
        log_file=log_file,
        max_bytes=get_config("logging.file.max_bytes", 10 * 1024 * 1024),
        backup_count=get_config("logging.file.backup_count", 5),
        colorize=get_config("logging.console.colorize", True)
    )
