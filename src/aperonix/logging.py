"""Structured logging for aperonix.

This module provides a configured structlog logger with JSON output
for production and pretty console output for development.
"""

import logging
import re
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

__all__ = [
    "configure_logging",
    "get_logger",
    "redact_secrets",
]

SECRET_FIELDS = frozenset({"api_key", "key", "authorization"})
REDACTED = "***"

_KEY_PARAM = re.compile(r"([?&]key=)[^&\s'\"]+")


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credentials before an entry is rendered.

    Fields named like a credential are replaced outright. The provider key
    travels as a ``key`` query parameter, so it is also masked inside
    any string value that embeds a request URL.
    """
    for field, value in event_dict.items():
        if field in SECRET_FIELDS and value is not None:
            event_dict[field] = REDACTED
        elif isinstance(value, str) and "key=" in value:
            event_dict[field] = _KEY_PARAM.sub(rf"\1{REDACTED}", value)
    return event_dict


def configure_logging(
    level: int = logging.INFO,
    json_output: bool = False,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the application.

    Args:
        level: Logging level (default: INFO)
        json_output: If True, output JSON; if False, pretty console output
        add_timestamp: If True, add ISO timestamp to log entries
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_secrets,
    ]

    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    # Request logs from the HTTP stack would leak the API key query parameter
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Logger name (usually __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)


_configured = False


def _ensure_configured() -> None:
    """Ensure logging is configured with defaults."""
    global _configured
    if not _configured:
        configure_logging()
        _configured = True


_ensure_configured()
