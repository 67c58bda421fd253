"""Structured logging configuration using structlog.

JSON lines in production, coloured console output in development. Every
module logs through get_logger() with snake_case event names and key-value
context, e.g. ``log.info("cache_refreshed", source="fresh", entries=612)``.
"""

import logging
import sys
from typing import TextIO

import structlog

_SERVICE_NAME = "court-schedule"


def setup_logging(
    json_output: bool = False, log_level: str = "INFO", stream: TextIO = sys.stdout
) -> None:
    """Configure structlog and route stdlib logging through the same stream.

    Args:
        json_output: If True, output JSON (production). If False, console format (dev).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        stream: Where log lines go; CLI tools that print JSON pass stderr.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=_SERVICE_NAME)

    # uvicorn and playwright log through stdlib
    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(stream)]
    root.setLevel(numeric_level)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance bound with the module name.

    Args:
        name: Logger name (typically __name__ from calling module).

    Returns:
        Configured structlog logger with module name context.
    """
    return structlog.get_logger(name)
