"""Centralized logging configuration for routewise.

Sets up standard Python logging with a console handler (plain or rich) and
an optional file handler.
"""

import logging
import sys
from typing import Optional, Union

from rich.logging import RichHandler

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
RICH_LOG_FORMAT = "%(message)s"


def _resolve_level(log_level: Union[int, str]) -> int:
    if isinstance(log_level, int):
        return log_level
    level = logging.getLevelName(str(log_level).upper())
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
    use_rich: bool = False,
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level, as a number or a name ("DEBUG").
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output.
        use_rich: Render console output with rich instead of a plain stream.
    """
    level = _resolve_level(log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    if use_rich:
        console_handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
        console_handler.setFormatter(logging.Formatter(RICH_LOG_FORMAT))
    else:
        # stderr keeps command output on stdout clean
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")

    logging.debug(f"Logging configured. Level={logging.getLevelName(level)}")
