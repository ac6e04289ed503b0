"""
============================================================================
FILE: logging_config.py
LOCATION: api/logging_config.py
============================================================================

PURPOSE:
    Provides configurable logging infrastructure with two output formats:
    - JSON structured logs for production (machine-readable, for log aggregators)
    - Human-readable logs for development (console-friendly)

ROLE IN PROJECT:
    Centralizes logging configuration for the API and the console pages.
    Modules keep using logging.getLogger(__name__); setup_logging() attaches
    the handler to the "api" and "services" package loggers so that every
    module logger below them shares the same format.

KEY COMPONENTS:
    - StructuredFormatter: JSON log formatter for production environments
    - DevelopmentFormatter: Human-readable formatter for local development
    - setup_logging(level, production): Configure the package loggers
    - get_logger(name): Get a child logger of the "archviews" logger

LOG FORMAT (Development):
    HH:MM:SS [LEVEL] module: message

LOG FORMAT (Production/JSON):
    {"timestamp": "...", "level": "...", "module": "...", "message": "..."}

DEPENDENCIES:
    - External: logging (Python standard library)
    - Internal: None

USAGE:
    from api.logging_config import setup_logging

    setup_logging(level="DEBUG")
    logging.getLogger(__name__).info("Console started")
============================================================================
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Iterable, Optional


PACKAGE_LOGGERS = ("archviews", "api", "services")


class StructuredFormatter(logging.Formatter):
    """JSON-style structured log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }

        if record.funcName:
            log_data["function"] = record.funcName

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields if provided
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable log formatter for development."""

    FORMAT = "%(asctime)s [%(levelname)s] %(module)s: %(message)s"

    def __init__(self):
        super().__init__(self.FORMAT, datefmt="%H:%M:%S")


def setup_logging(
    level: str = "INFO",
    production: bool = False,
    logger_names: Iterable[str] = PACKAGE_LOGGERS,
) -> logging.Logger:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        production: Use JSON format if True, human-readable if False
        logger_names: Package loggers that receive the handler

    Returns:
        The "archviews" logger
    """
    handler = logging.StreamHandler(sys.stdout)
    if production:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    for name in logger_names:
        package_logger = logging.getLogger(name)
        package_logger.setLevel(numeric_level)
        package_logger.handlers.clear()
        package_logger.addHandler(handler)
        # Prevent duplicate lines through the root logger
        package_logger.propagate = False

    return logging.getLogger("archviews")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a child logger with the given name."""
    base_logger = logging.getLogger("archviews")
    if name:
        return base_logger.getChild(name)
    return base_logger
