"""
Log setup for the bundle client and the `bestchange` CLI.

Every module logs under the `bestchange` namespace. Console records go to
stderr so that listings and CSV exports written to stdout can be piped, and
they are printed through tqdm so a running download bar is not torn apart.
"""

import logging
import sys
from pathlib import Path

from tqdm import tqdm

# Full record layout, used by --verbose and the log file
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"

ROOT_LOGGER_NAME = "bestchange"

_loggers: dict[str, logging.Logger] = {}


class ProgressAwareHandler(logging.StreamHandler):
    """Console handler that prints above an active tqdm download bar."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


def setup_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    verbose: bool = False,
) -> None:
    """
    Configure the `bestchange` logger for a CLI run.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Console level; --quiet passes WARNING
        log_file: Also write every record, DEBUG included, to this file
        verbose: DEBUG on the console with the full record layout, which
            shows skipped rows and pipeline state changes
    """
    if verbose:
        level = logging.DEBUG
        console_format = LOG_FORMAT
    else:
        console_format = CONSOLE_FORMAT

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG if log_file else level)
    root_logger.handlers.clear()

    console_handler = ProgressAwareHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(console_format, LOG_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    # Connection pool chatter from the bundle download
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, placed under the `bestchange` namespace.

    Usage:
        logger = get_logger(__name__)   # "data.parsers" -> "bestchange.data.parsers"
        logger.debug("Skipped rate row %d: %s", line_no, reason)
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)

    return _loggers[name]
