"""Structured logging configuration.

Module loggers are lazy proxies: they resolve the configuration on first use,
so loggers created at import time still honour ``setup_logging``.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.typing import EventDict, FilteringBoundLogger, WrappedLogger

from config import get_settings

settings = get_settings()

QUIET_LOGGERS = ("uvicorn.access", "httpx", "botocore", "boto3")


def resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def add_app_context(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("app", settings.app_name)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def setup_logging() -> None:
    """Configure structured logging."""
    level = resolve_level(settings.log_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.log_format == "json":
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.processors.format_exc_info, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_request_context(**values: Any) -> None:
    """Start a fresh per-request context merged into every event."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: Optional[str] = None) -> FilteringBoundLogger:
    if name:
        return structlog.get_logger(logger=name)
    return structlog.get_logger()
