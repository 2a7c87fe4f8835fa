"""Logging and tracing setup for newest-image-tag.

Modules log through ``structlog.get_logger(__name__)`` with snake_case event
names and key/value context. ``configure_logging`` is called once by the CLI;
library users keep whatever structlog configuration they already have.

Spans are emitted through the OpenTelemetry API. Without an SDK installed
by the host application the tracer is a no-op.

Example:
    >>> from newest_image_tag.observability import configure_logging, get_tracer
    >>> configure_logging(verbose=True)
    >>> with get_tracer().start_as_current_span("newest_image_tag.resolve") as span:
    ...     span.set_attribute("newest_image_tag.tag_count", 3)
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import TYPE_CHECKING

import structlog
from opentelemetry import trace

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

TRACER_NAME = "newest_image_tag"

LOG_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_tracer: Tracer | None = None
_lock = threading.Lock()


def configure_logging(verbose: bool = False, json_output: bool = False) -> None:
    """Configure structlog to write to stderr.

    Args:
        verbose: Emit DEBUG events; otherwise only WARNING and above.
        json_output: Render events as JSON lines instead of console text.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt=LOG_TIMESTAMP_FORMAT),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_tracer() -> Tracer:
    """Return the package tracer, creating it on first use."""
    global _tracer

    if _tracer is not None:
        return _tracer

    with _lock:
        if _tracer is None:
            _tracer = trace.get_tracer(TRACER_NAME)
        return _tracer


def reset_for_testing() -> None:
    """Drop the cached tracer so tests can install their own provider."""
    global _tracer

    with _lock:
        _tracer = None


__all__ = [
    "LOG_TIMESTAMP_FORMAT",
    "TRACER_NAME",
    "configure_logging",
    "get_tracer",
    "reset_for_testing",
]
