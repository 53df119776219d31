"""
Logging configuration and the event loggers injected into pipeline components
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog

from core.config import settings


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None):
    """Configure application logging"""

    level_name = (level or settings.LOG_LEVEL).upper()
    log_format = (log_format or settings.LOG_FORMAT).lower()
    log_level = getattr(logging, level_name, logging.INFO)

    if log_format == "json":
        # structlog renders the whole line
        fmt = "%(message)s"
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    logging.basicConfig(
        level=log_level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True
    )

    # Reduce noise from libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {level_name} level ({log_format})")


class EventLogger(ABC):
    """
    Logging capability handed to each pipeline component.

    Implementations are chosen once at startup; components never look up a
    logger themselves.
    """

    @abstractmethod
    def info(self, event: str, fields: Optional[Dict[str, Any]] = None) -> None:
        ...

    @abstractmethod
    def error(self, event: str, fields: Optional[Dict[str, Any]] = None) -> None:
        ...


class TextEventLogger(EventLogger):
    """Human-readable lines through the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("ingestion")

    def info(self, event: str, fields: Optional[Dict[str, Any]] = None) -> None:
        self._logger.info(_format_text(event, fields))

    def error(self, event: str, fields: Optional[Dict[str, Any]] = None) -> None:
        self._logger.error(_format_text(event, fields))


class JsonEventLogger(EventLogger):
    """One JSON object per event, rendered by structlog."""

    def __init__(self, name: str = "ingestion", logger: Any = None):
        self._logger = logger or structlog.wrap_logger(
            logging.getLogger(name),
            processors=[
                structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(sort_keys=True),
            ],
        )

    def info(self, event: str, fields: Optional[Dict[str, Any]] = None) -> None:
        self._logger.info(event, **(fields or {}))

    def error(self, event: str, fields: Optional[Dict[str, Any]] = None) -> None:
        self._logger.error(event, **(fields or {}))


def build_event_logger(log_format: Optional[str] = None) -> EventLogger:
    """Select the event logger variant for this process."""
    log_format = (log_format or settings.LOG_FORMAT).lower()
    if log_format == "json":
        return JsonEventLogger()
    if log_format == "text":
        return TextEventLogger()
    raise ValueError(f"Unknown log format: {log_format}")


def _format_text(event: str, fields: Optional[Dict[str, Any]]) -> str:
    if not fields:
        return event
    rendered = " ".join(f"{key}={value}" for key, value in fields.items())
    return f"{event} {rendered}"
