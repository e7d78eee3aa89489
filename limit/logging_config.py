"""Structured logging for Limit.

Library modules only call ``get_logger``; nothing is configured on import.
Limiters bind ``limiter`` and ``prefix`` to their logger, and callers can
add request context with ``structlog.contextvars.bind_contextvars``,
which is merged into every event.

Usage:
    from limit.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("redis_connected", address="cache:6379")
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog


def _processors(json_output: bool, colors: bool) -> list[structlog.types.Processor]:
    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    colors: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Route structlog events through stdlib logging to ``stream``.

    Args:
        level: Log level name (DEBUG logs every rate limit decision)
        json_output: Render one JSON object per event
        colors: Colorize console output
        stream: Output stream, defaults to stderr
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, level.upper()),
        force=True,
    )
    structlog.configure(
        processors=_processors(json_output, colors),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Module-level loggers pick up reconfiguration (CLI flags, tests).
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def configure_from_cli(verbose: bool = False, json_output: bool = False) -> None:
    """Configure logging from the CLI's ``--verbose`` and ``--json-logs`` flags."""
    configure_logging(
        level="DEBUG" if verbose else "INFO",
        json_output=json_output,
        colors=not json_output and sys.stderr.isatty(),
    )
