"""
Logging configuration for the boxrun CLI.

Library code only creates module loggers; handlers are installed here, by
the program embedding boxrun, or not at all.
"""
import logging
import sys
from typing import List, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
) -> None:
    """Send boxrun's log records to stderr and optionally to a file.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Unknown names
            fall back to INFO.
        log_file: Also append records to this file.
        format_string: logging format; DEFAULT_FORMAT when omitted.
    """
    log_level = LEVELS.get(level.upper(), logging.INFO)

    # stdout carries the JSON run report.
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True,
    )

    # Exporter retries are noisy at DEBUG and say nothing about sandboxes.
    logging.getLogger("opentelemetry").setLevel(max(log_level, logging.WARNING))
