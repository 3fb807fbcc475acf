"""Structured logging configuration for the Dragon's Bane world engine.

Logging goes through structlog so every engine event carries key/value
context (change type, NPC id, action counter) in both the human-readable
development renderer and the JSON production renderer. The world service
configures logging from ``Settings`` when it starts.

Example:
    >>> from dragons_bane.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Combat started", enemy_npc_id="npc_wolf", turn_count=1)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from dragons_bane.core.config import Settings


MESSAGE_FORMAT = "%(message)s"

_file_handler: logging.FileHandler | None = None


class AppContext:
    """Processor stamping every entry with the application name and version."""

    def __init__(self, app: str = "dragons_bane", version: str | None = None) -> None:
        self.app = app
        self.version = version

    def __call__(
        self,
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("app", self.app)
        if self.version:
            event_dict.setdefault("version", self.version)
        return event_dict


def _level_number(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def _processors(json_format: bool, app_context: AppContext, *, colors: bool) -> list[Processor]:
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        return [*shared, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        *shared,
        structlog.dev.ConsoleRenderer(colors=colors, exception_formatter=structlog.dev.plain_traceback),
    ]


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | Path | None = None,
    app: str = "dragons_bane",
    version: str | None = None,
) -> None:
    """Configure application-wide logging.

    Structlog renders each entry and hands the finished line to the
    standard library, so stdout and the optional log file receive the
    same text. Safe to call more than once; loggers are not cached, so a
    later call takes effect for module-level loggers too.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output logs in JSON format for production.
        log_file: Optional path to a log file for persistent logging.
        app: Application name stamped on every entry.
        version: Application version stamped on every entry.
    """
    global _file_handler

    number = _level_number(level)

    structlog.configure(
        processors=_processors(json_format, AppContext(app, version), colors=not log_file),
        wrapper_class=structlog.make_filtering_bound_logger(number),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format=MESSAGE_FORMAT, level=number, stream=sys.stdout)
    root = logging.getLogger()
    root.setLevel(number)

    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        _file_handler = logging.FileHandler(path, encoding="utf-8")
        _file_handler.setLevel(number)
        _file_handler.setFormatter(logging.Formatter(MESSAGE_FORMAT))
        root.addHandler(_file_handler)


def configure_from_settings(settings: Settings) -> None:
    """Apply the logging section of ``Settings``.

    Debug mode forces DEBUG level regardless of ``log_level``.
    """
    configure_logging(
        level="DEBUG" if settings.debug else settings.log_level,
        json_format=settings.json_logs,
        log_file=settings.log_file,
        app=settings.app_name,
        version=settings.app_version,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, typically with ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables included in all subsequent logs.

    The world service binds the current action counter for the duration of
    a turn so every reducer warning can be traced back to it.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = [
    "AppContext",
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
]
