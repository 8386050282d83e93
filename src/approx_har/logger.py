"""Structured logging configuration using *structlog*.

Events go to stderr so that command output on stdout (summaries, export
paths) stays machine-readable.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Libraries whose INFO output would drown out campaign events.
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json" or (log_format == "auto" and not sys.stderr.isatty()):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(level: str = "INFO", log_format: str = "auto") -> None:
    """Configure *structlog* and route stdlib logging to stderr.

    *log_format* is ``"console"``, ``"json"`` or ``"auto"`` (console on a
    terminal, JSON otherwise).  Call once at application startup.
    """
    numeric = getattr(logging, level, logging.INFO)
    logging.basicConfig(level=numeric, stream=sys.stderr, format="%(name)s %(levelname)s %(message)s")
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _renderer(log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
