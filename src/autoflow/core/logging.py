"""
Structured logging for the automation engine.

Wraps structlog with one processor chain shared by every module. Log output
goes to stderr so that CLI output on stdout (tables, JSON) stays clean and
pipeable.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="autoflow")
            │
            ▼
        structlog processor chain:
          1. TimeStamper(iso)
          2. merge_contextvars   (workflow / run_id from LogContext)
          3. add_log_level
          4. logger name (bound by get_logger)
          5. service metadata
          6. ConsoleRenderer (tty) | JSONRenderer (pipes, cron)

Examples:
    >>> from autoflow.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("workflow.start", workflow="backup", step_count=3)

    Scoped context for one run:

    >>> with LogContext(workflow="backup", run_id="exec_1700000000"):
    ...     logger.info("step.completed", step="step_1")
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "autoflow"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp each event with the service name unless already set."""
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    """Resolve ``sys.stderr`` at call time so redirected streams are honored."""
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(
    level: str = "WARNING",
    json_format: bool | None = None,
    service: str = "autoflow",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Minimum level name, e.g. ``"INFO"``
        json_format: True for JSON, False for console, None for auto
            (JSON when stderr is not a tty, e.g. under cron)
        service: Value of the ``service`` key on every event
        add_timestamp: Prepend an ISO-8601 ``timestamp`` key
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stderr.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    Resolution is lazy: the first event uses whatever
    :func:`configure_logging` installed by then.
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach *kwargs* to every event logged from this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Drop *keys* from the bound context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Bind keys for the duration of a ``with`` block, then unbind them.

    Example:
        with LogContext(workflow="deploy", run_id="exec_1700000000"):
            logger.info("step.started")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "LogContext",
    "bind_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
