"""Loguru sinks for the LLM client and the request governor.

Most of the engine logs through structlog (see utils/logging.py). The
Gemini client and the GDELT rate governor log through loguru instead; this
module gives those records the same verification correlation id that
structlog carries, and masks credentials that can surface in provider
error text (query-string keys, bearer tokens, Gemini keys).
"""

import re
import sys
from typing import Any, Callable, Optional, TextIO, Union

import structlog
from loguru import logger

from evidence_engine.config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <magenta>{extra[correlation_id]}</magenta> | "
    "<level>{message}</level>"
)
PLAIN_FORMAT = "{level} | {extra[component]} | {extra[correlation_id]} | {message}"

REDACTED = "***"

_SECRET_PATTERNS = [
    re.compile(r"(?i)\b((?:api_?)?key=)[^&\s\"']+"),
    re.compile(r"(?i)\b(bearer\s+)[A-Za-z0-9._~+/-]+=*"),
    re.compile(r"()\bAIza[0-9A-Za-z_-]{20,}"),
]

Sink = Union[TextIO, Callable[[Any], None]]


def redact_secrets(text: str) -> str:
    """Mask API keys and bearer tokens in a log message."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: f"{m.group(1)}{REDACTED}", text)
    return text


def _patch_record(record: dict) -> None:
    context = structlog.contextvars.get_contextvars()
    extra = record["extra"]
    extra.setdefault("component", "evidence_engine")
    extra.setdefault("correlation_id", context.get("correlation_id", "-"))
    if "finding_id" in context:
        extra.setdefault("finding_id", context["finding_id"])
    record["message"] = redact_secrets(record["message"])


def configure_logging(
    sink: Optional[Sink] = None,
    level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Replace loguru handlers with one verification-aware sink.

    Console format on an interactive stderr gets colors; anything else is
    serialized JSON on stdout. Passing a sink (stream or callable) writes
    plain lines there instead, which is what tests use.

    Args:
        sink: Optional destination overriding the stdout/stderr choice
        level: Minimum level, defaults to settings.log_level
        log_format: "console" or "json", defaults to settings.log_format
    """
    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    logger.remove()
    logger.configure(patcher=_patch_record)

    if sink is not None:
        logger.add(sink, format=PLAIN_FORMAT, level=level, colorize=False, diagnose=False)
    elif log_format == "console" and sys.stderr.isatty():
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True, diagnose=False)
    else:
        # Locals are never rendered: they can hold credentials.
        logger.add(sys.stdout, format="{message}", level=level, serialize=True, diagnose=False)


def get_logger(component: str):
    """
    Loguru logger tagged with a component name.

    Example:
        >>> log = get_logger("RateGovernor.gdelt")
        >>> log.debug("Spacing requests: waiting 1.20s")
    """
    return logger.bind(component=component)


configure_logging()

__all__ = ["configure_logging", "get_logger", "redact_secrets"]
