"""Logging configuration.

Every state transition, conflict and backup is logged through the stdlib
logging module. Two sinks are attached to the "dotctl" logger:

- a JSON Lines file (~/.local/state/dotctl/setup.log) receiving every
  INFO-and-above record with a UTC timestamp and level
- a Rich handler on stderr for interactive output
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pythonjsonlogger.json import JsonFormatter
from rich.logging import RichHandler

from dotctl.core.paths import get_log_path
from dotctl.utils.formatting import err_console

LOGGER_NAME = "dotctl"

# Level names written to the log file
_LEVEL_NAMES: dict[int, str] = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class JsonLinesFormatter(JsonFormatter):
    """Formats records as single-line JSON objects.

    Only timestamp, level, logger and message are written, plus the
    traceback when one is attached.
    """

    def __init__(self) -> None:
        super().__init__(json_ensure_ascii=False)

    def add_fields(
        self,
        log_data: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        log_data["timestamp"] = datetime.fromtimestamp(record.created, UTC).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        )
        log_data["level"] = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        log_data["logger"] = record.name
        log_data["message"] = record.getMessage()
        if message_dict.get("exc_info"):
            log_data["exception"] = message_dict["exc_info"]


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_path: Path | None = None,
) -> Path | None:
    """Attach the file and console handlers to the dotctl logger.

    Calling this again replaces the handlers from the previous call.

    Args:
        verbose: Show INFO records on the console.
        quiet: Show only ERROR records on the console.
        log_path: Log file override. Default: ~/.local/state/dotctl/setup.log

    Returns:
        The log file path, or None if the file could not be opened.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.INFO)
    logger.propagate = False

    if verbose:
        console_level = logging.INFO
    elif quiet:
        console_level = logging.ERROR
    else:
        console_level = logging.WARNING

    console_handler = RichHandler(
        console=err_console,
        show_path=False,
        show_time=verbose,
        markup=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    path = log_path or get_log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        logger.warning("Cannot open log file %s: %s", path, e)
        return None

    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(JsonLinesFormatter())
    logger.addHandler(file_handler)
    return path
