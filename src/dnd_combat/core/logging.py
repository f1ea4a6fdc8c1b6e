"""Structured logging for the combat engine.

Level, renderer and app name come from :class:`Settings`. Console output
is meant for interactive play; JSON lines suit harnesses that replay
encounters from their logs.

Example:
    >>> from dnd_combat.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Combat started", combatants=5)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import structlog

from dnd_combat.core.config import Settings, get_settings


if TYPE_CHECKING:
    from structlog.types import Processor


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog from settings.

    Args:
        settings: Settings to read; the cached settings if omitted.

    Example:
        >>> configure_logging(Settings(log_level="DEBUG", json_logs=True))
    """
    settings = settings or get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            {structlog.processors.CallsiteParameter.MODULE}
        ),
    ]
    if settings.json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.debug))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    structlog.contextvars.bind_contextvars(app=settings.app_name)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind values into every later log entry of this context.

    Example:
        >>> bind_context(combat_round=2)
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
