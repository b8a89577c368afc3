"""
Cadence Logging - structured logging for the control-flow wrappers.

Every wrapper reports what it did with a call (dropped, queued, retried,
abandoned) as a structlog event. The events are informational only: logging
never changes the semantics of a wrapped call.

Manifesto:
    Control-flow wrappers make decisions the caller cannot see. A throttled
    call that was silently dropped, a retry that succeeded on attempt three,
    an operation abandoned by its deadline: all invisible at the call site.
    Structured events make those decisions observable without extra API.

    - **Structured:** Dotted event names with key/value fields
    - **Flexible:** JSON for aggregation, colored console for development
    - **Context:** bind_context() propagates fields through async tasks

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="cadence")
            │
            ▼
        structlog processor chain:
          1. TimeStamper (iso)
          2. merge_contextvars
          3. add_log_level / add_logger_name
          4. service metadata
          5. JSONRenderer or ConsoleRenderer

        logger = get_logger(__name__)
        logger.debug("throttle.dropped", operation="save", since_last=0.04)

Examples:
    >>> from cadence.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=True)
    >>> logger = get_logger(__name__)
    >>> logger.info("gate.admitted", active=2, waiting=0)

Tags:
    logging, structlog, observability, cadence

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "cadence"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    service: str = "cadence",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). ``None`` reads
            ``CADENCE_LOG_LEVEL`` through settings.
        json_format: True for JSON, False for console, None for settings
            value, then auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if level is None or json_format is None:
        from cadence.core.settings import get_settings

        settings = get_settings()
        level = level or settings.log_level
        if json_format is None:
            json_format = settings.json_logs

    if json_format is None:
        json_format = not sys.stdout.isatty()

    numeric_level = getattr(logging, level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(request_id="abc123")
        logger.info("gate.queued")  # Includes request_id
    """
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
        async with LogContext(batch="nightly"):
            await limited_fetch(url)
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> "LogContext":
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> "LogContext":
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args) -> None:
        unbind_context(*self._context.keys())


def operation_name(func: Any) -> str:
    """Best-effort readable name of a wrapped callable for log fields."""
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", None) or repr(func)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
    "operation_name",
]
