"""Structured logging setup (structlog).

Outputs structured logs to stdout using structlog.
- Development: human-readable console renderer with colors
- Testing/CI/Production: JSON renderer for machine parsing

Components never configure logging themselves. They create a module-level
logger with ``structlog.get_logger(__name__)`` and log event-style keys with
keyword context:

    logger.warning("account_locked", identity=email, failed_attempts=5)

``configure_logging`` is called once by the application factory.
"""

from __future__ import annotations

import logging
import sys

import structlog

from src.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog for the whole process.

    Args:
        settings (Settings): Provides log level, environment and JSON preference.
    """
    use_json = settings.log_json or not settings.is_development

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if use_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    level = logging.getLevelName(settings.log_level)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
