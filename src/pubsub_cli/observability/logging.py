"""structlog setup: structured logs go to stderr, never to the message stream."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog


def configure_logging(verbose: bool = False, *, stream: TextIO | None = None) -> None:
    """Route structlog output to *stream* (stderr by default).

    Only warnings and errors are shown unless *verbose* is set, in which case
    lifecycle events (topic created, receive started, ...) are shown too.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    def _logger_factory(*args: Any) -> structlog.PrintLogger:
        # sys.stderr is looked up per logger so a swapped stream is honored.
        return structlog.PrintLogger(stream or sys.stderr)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=_logger_factory,
        cache_logger_on_first_use=False,
    )
