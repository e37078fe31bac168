"""Structured logging configuration using structlog.

Provides JSON logging for production and console logging for development.
Operator events are redacted with the same key policy as the audit trail,
so a failing write that logs its payload cannot leak a password.
"""

import sys
from collections.abc import MutableMapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

from scribe.audit.redaction import redact

LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

# structlog bookkeeping keys that must survive redaction untouched
_RESERVED_KEYS = frozenset({"event", "level", "timestamp", "logger", "exc_info"})


class SensitiveKeyRedactor:
    """structlog processor that masks values stored under sensitive keys."""

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._redact_event(event_dict))

    def _redact_event(self, event_dict: MutableMapping[str, Any]) -> dict[str, Any]:
        reserved = {k: v for k, v in event_dict.items() if k in _RESERVED_KEYS}
        payload = {k: v for k, v in event_dict.items() if k not in _RESERVED_KEYS}
        result = redact(payload)
        # keep the original key order
        return {key: reserved[key] if key in reserved else result[key] for key in event_dict}


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format - "json" for production, "console" for development
        redact_pii: Whether to mask sensitive keys in log events
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact_pii:
        processors.append(SensitiveKeyRedactor())

    if format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LEVELS.get(level.upper(), 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name.

    Args:
        name: Logger name (typically __name__ of the module)
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
