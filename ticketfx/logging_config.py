"""
Structured logging for the rate service and the tool loop.

Every record carries the service name and deployment environment. HTTP and
SDK client libraries are held at WARNING unless DEBUG is requested.
"""

import logging
import sys
from typing import Any

import structlog

from ticketfx.config import settings

SERVICE_NAME = "ticketfx"

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def add_service_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor stamping ``service`` and ``environment``."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def library_log_level(level: str) -> int:
    """Level for NOISY_LOGGERS given the application's level."""
    app_level = getattr(logging, level.upper())
    return app_level if app_level <= logging.DEBUG else max(app_level, logging.WARNING)


def quiet_library_loggers(level: str) -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_log_level(level))


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Overrides ``settings.log_level``
        log_format: ``json`` or ``console``; overrides ``settings.log_format``
    """
    level = level or settings.log_level
    log_format = log_format or settings.log_format

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_service_context,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )
    quiet_library_loggers(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Example:
        logger = get_logger(__name__)
        logger.info("rate_cache_hit", key="forex:PEN:USD")
    """
    return structlog.get_logger(name)
