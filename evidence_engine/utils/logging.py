"""Structured logging utilities using structlog for verification tracing."""

import os
import sys
import uuid
from typing import Any, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer

IS_TTY = sys.stderr.isatty()
LOG_FORMAT = os.getenv("LOG_FORMAT", "console").lower()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_structured_logging() -> None:
    """
    Configure structured logging with appropriate processors and renderers.

    Uses:
    - Console renderer for development (colorized, human-readable)
    - JSON renderer for production (structured, machine-readable)
    - Context variables for per-verification correlation ids
    """
    processors = [
        merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if IS_TTY and LOG_FORMAT == "console":
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        processors.append(JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_structured_logger(name: str, **additional_context: Any) -> structlog.BoundLogger:
    """
    Get a structured logger with bound context.

    Args:
        name: Logger name (typically module name)
        **additional_context: Additional context to bind

    Returns:
        Configured BoundLogger instance with context
    """
    logger = structlog.get_logger(name)
    if additional_context:
        logger = logger.bind(**additional_context)
    return logger


def get_correlation_id() -> str:
    """Generate a correlation ID for tracing one verification pass."""
    return str(uuid.uuid4())


def bind_verification_context(
    correlation_id: str,
    finding_id: Optional[str] = None,
) -> None:
    """
    Bind verification context to every log line emitted in this task.

    Uses structlog contextvars, so concurrent verifications running in
    separate asyncio tasks keep their own correlation id.

    Args:
        correlation_id: Correlation ID for this verification pass
        finding_id: Optional finding identifier
    """
    context: dict[str, Any] = {"correlation_id": correlation_id}
    if finding_id:
        context["finding_id"] = finding_id
    structlog.contextvars.bind_contextvars(**context)


def clear_verification_context() -> None:
    """Remove verification context bound by bind_verification_context."""
    structlog.contextvars.unbind_contextvars("correlation_id", "finding_id")


configure_structured_logging()


__all__ = [
    "get_structured_logger",
    "get_correlation_id",
    "bind_verification_context",
    "clear_verification_context",
    "configure_structured_logging",
]
