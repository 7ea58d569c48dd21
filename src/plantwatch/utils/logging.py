"""Standardized console logging.

Provides three output modes:
- Status mode: [HH:MM:SS] message (colored if TTY)
- Verbose mode: [LEVEL][HH:MM:SS] message
- JSON mode: {"level":"...","ts":"...","msg":"..."}
"""

import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO

ROOT_LOGGER = "plantwatch"


class LogMode(Enum):
    """Logging output mode."""

    STATUS = "status"
    VERBOSE = "verbose"
    JSON = "json"


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    GRAY = "\033[90m"


LEVEL_COLORS = {
    logging.DEBUG: Colors.GRAY,
    logging.INFO: Colors.GREEN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.RED,
}


def _is_tty(stream: TextIO | None = None) -> bool:
    """Check if the stream is a TTY (supports colors)."""
    if stream is None:
        stream = sys.stdout
    return hasattr(stream, "isatty") and stream.isatty()


def timestamp(now: datetime | None = None) -> str:
    """Return the wall-clock time as zero-padded HH:MM:SS."""
    return (now or datetime.now()).strftime("%H:%M:%S")


class StatusFormatter(logging.Formatter):
    """Formatter for the watcher's status lines.

    Format: [HH:MM:SS] message
    The timestamp is colored by level when output is a TTY.
    """

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        stamp = timestamp(datetime.fromtimestamp(record.created))
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        if self.use_colors:
            color = LEVEL_COLORS.get(record.levelno, Colors.RESET)
            return f"{color}[{stamp}]{Colors.RESET} {message}"
        return f"[{stamp}] {message}"


class VerboseFormatter(logging.Formatter):
    """Formatter for verbose output with level names.

    Format: [LEVEL][HH:MM:SS] message
    """

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        stamp = timestamp(datetime.fromtimestamp(record.created))
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        if self.use_colors:
            color = LEVEL_COLORS.get(record.levelno, Colors.RESET)
            return f"{color}[{level_name}]{Colors.RESET}[{stamp}] {message}"
        return f"[{level_name}][{stamp}] {message}"


class JSONFormatter(logging.Formatter):
    """Formatter for JSON lines output (machine-readable).

    Format: {"level":"INFO","ts":"2026-01-31T19:45:23+00:00","msg":"..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "level": record.levelname,
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "msg": record.getMessage(),
        }

        # Structured extras passed as logger.info(..., extra={"extra_data": {...}})
        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, dict):
            log_entry.update(extra_data)

        return json.dumps(log_entry, default=str)


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Get a logger inside the plantwatch hierarchy.

    Args:
        name: Logger name; bare names are nested under ``plantwatch``

    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging(
    mode: LogMode = LogMode.STATUS,
    level: int = logging.INFO,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the plantwatch logger with the specified mode.

    Args:
        mode: Output mode (status, verbose, json)
        level: Minimum log level
        stream: Output stream (default: stdout)

    Returns:
        The configured root plantwatch logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    logger.handlers.clear()

    output = stream or sys.stdout
    use_colors = _is_tty(output)

    if mode == LogMode.JSON:
        formatter: logging.Formatter = JSONFormatter()
    elif mode == LogMode.VERBOSE:
        formatter = VerboseFormatter(use_colors=use_colors)
    else:
        formatter = StatusFormatter(use_colors=use_colors)

    handler = logging.StreamHandler(output)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def configure_from_cli(
    verbose: bool = False,
    quiet: bool = False,
    json_output: bool = False,
) -> logging.Logger:
    """Configure logging based on CLI flags.

    Args:
        verbose: Show level names and debug messages (ignored events)
        quiet: Suppress status messages (warnings and errors only)
        json_output: Emit JSON lines
    """
    if json_output:
        mode = LogMode.JSON
    elif verbose:
        mode = LogMode.VERBOSE
    else:
        mode = LogMode.STATUS

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    return setup_logging(mode=mode, level=level)
