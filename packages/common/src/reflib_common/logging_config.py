"""Structured logging setup.

Modules call ``get_logger(__name__)`` at import time and log snake_case
event names with keyword context::

    logger.info("fix_action_applied", record_id="smith2020", action="skip")

``configure_logging`` is called once by entry points (the CLI). Logs go to
stderr so that stdout stays clean for command output.
"""

import logging
import sys
from typing import Optional

import structlog


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name. Defaults to ``Settings.log_level``.
        log_format: ``console`` or ``json``. Defaults to ``Settings.log_format``.
    """
    if level is None or log_format is None:
        from reflib_common.config import get_settings

        settings = get_settings()
        level = level or settings.log_level
        log_format = log_format or settings.log_format

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to ``name``."""
    return structlog.get_logger(name)
