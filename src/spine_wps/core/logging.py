"""
Structured logging for the process engine.

Manifesto:
    Every registration, dispatch and job transition is logged as an
    event with key/value fields, so a job can be followed across the
    worker threads by ``job_id`` and ``process_id`` alone.

    - **Structures:** JSON output for log aggregation
    - **Correlates:** ``job_id`` / ``process_id`` bound per job run
    - **Flexes:** console output for development, JSON for production

Examples:
    >>> from spine_wps.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True)
    >>> log = get_logger(__name__)
    >>> log.info("process.registered", process_id="echo")

    Scoped context for a job run:

    >>> with LogContext(job_id="j-1", process_id="echo"):
    ...     log.info("job.started")

Guardrails:
    - Service name stored globally (set once at startup)
    - Auto-detects JSON vs console based on TTY

Tags:
    logging, structlog, observability, json-logging, spine-wps

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


_SERVICE_NAME = "spine-wps"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _add_logger_name(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Expose the name given to ``get_logger`` as the ``logger`` field."""
    name = event_dict.pop("logger_name", None)
    if name is not None:
        event_dict.setdefault("logger", name)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "spine-wps",
    add_timestamp: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
        stream: Where log lines go (default stdout; the CLI uses stderr)
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    stream = stream or sys.stdout
    if json_format is None:
        json_format = not stream.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
        _add_logger_name,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The name is carried as an initial value and rendered as the ``logger``
    field; print loggers have no name of their own.
    """
    if name:
        return structlog.get_logger(name, logger_name=name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs on this thread."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(job_id="abc123", process_id="echo"):
            log.info("job.started")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
