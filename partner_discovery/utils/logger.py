"""
Structured logging configuration.

Gateway, HTTP surface and CLI all log through structlog. Partner credentials
and signed Authorization headers never reach the output: the redaction
processor masks them before rendering.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from partner_discovery.config.settings import Settings

REDACTED = "***"
SENSITIVE_KEYS = frozenset({
    "authorization",
    "access_key",
    "secret_key",
    "coupang_access_key",
    "coupang_secret_key",
    "signature",
})

# Chatty third-party loggers kept at WARNING unless we run at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def redact_sensitive(_: Any, __: str, event_dict: EventDict) -> EventDict:
    """Mask credential-bearing keys in a log event."""
    for key in list(event_dict):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure application-wide structured logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Emit JSON lines instead of the colored console format.
        log_file: Optional file path that also receives stdlib log records.
    """
    numeric_level = getattr(logging, level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        redact_sensitive,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)
    third_party_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        logging.getLogger().addHandler(file_handler)


def configure_from_settings(settings: Settings) -> None:
    """Apply LOG_LEVEL / APP_ENV: JSON lines outside development."""
    level = "DEBUG" if settings.debug else settings.log_level
    setup_logging(level=level, json_format=settings.app_env != "development")


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger for the given module name."""
    return structlog.get_logger(name)


class LogContext:
    """Bind key/value pairs to every log line emitted inside the block."""

    def __init__(self, **kwargs):
        self.context = kwargs

    def __enter__(self):
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.unbind_contextvars(*self.context.keys())
