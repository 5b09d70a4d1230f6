"""
Logging setup - Colored console output and optional file output

Modules log through ``logging.getLogger(__name__)``; this module only wires
handlers on the package logger.
"""
import logging
from pathlib import Path
from typing import Optional, Union

from colorama import Fore, Style, init

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "dbmcp"

_HANDLER_TAG = "_dbmcp_handler"


class ColorFormatter(logging.Formatter):
    """Formatter that colors whole lines by level."""

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.RESET,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA,
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno, Fore.RESET)
        return f"{color}{message}{Style.RESET_ALL}"


def configure_logging(level: Union[str, int] = "INFO", log_file: Union[str, Path, None] = None,
                      use_color: bool = True) -> logging.Logger:
    """
    Install console (and optionally file) handlers on the package logger.

    Calling it again replaces the handlers installed by a previous call.

    Args:
        level: Level name or number
        log_file: Optional path of a log file (parent folders are created)
        use_color: Color console lines by level

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            package_logger.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler()
    if use_color:
        init()
        console.setFormatter(ColorFormatter(LOG_FORMAT))
    else:
        console.setFormatter(logging.Formatter(LOG_FORMAT))
    setattr(console, _HANDLER_TAG, True)
    package_logger.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        setattr(file_handler, _HANDLER_TAG, True)
        package_logger.addHandler(file_handler)

    return package_logger
