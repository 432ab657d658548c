"""
Logging configuration for truncation recovery.

The library itself only creates module loggers; it never installs handlers on
import. Applications (and the CLI) call one of the helpers below.

Usage:
    from truncation_recovery.logging_config import configure_logging, setup_structured_logging

    # Traditional text logging
    configure_logging(log_level="DEBUG")

    # Structured JSON logging (for services that ship logs)
    setup_structured_logging()

Environment Variables:
    TRUNCATION_RECOVERY_LOG_LEVEL - Set log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "truncation_recovery"

# Attributes every LogRecord carries; anything else was passed via ``extra=``
_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "message",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Each log entry includes timestamp, level, logger name, message and any
    extra fields added to the log record.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def _resolve_level(log_level: Optional[str]) -> int:
    if log_level is None:
        log_level = os.environ.get("TRUNCATION_RECOVERY_LOG_LEVEL", "INFO")
    return getattr(logging, log_level.upper(), logging.INFO)


def setup_structured_logging(log_level: Optional[str] = None) -> logging.Logger:
    """Configure structured JSON logging on the package logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured package logger
    """
    level = _resolve_level(log_level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)

    return logger


def configure_logging(
    log_level: Optional[str] = None,
    log_to_console: bool = True,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure text logging for truncation recovery.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_console: Whether to log to stderr
        log_file: Optional file to append log lines to

    Returns:
        Configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()
    logger.setLevel(_resolve_level(log_level))

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # stdout is reserved for CLI JSON output
    if log_to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.debug(f"Logging to: {log_file}")

    return logger
