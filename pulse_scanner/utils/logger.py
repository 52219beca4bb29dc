"""
PULSE SCANNER: Structured Logging Utility
structlog key-value events. Every logger carries the component that emitted
it; process-wide context (instance id) is bound through contextvars.
"""
import logging
import sys
from typing import Optional

import structlog

from pulse_scanner.config.settings import AppSettings, get_settings

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("aiohttp.access", "uvicorn.access")


def setup_logging(settings: Optional[AppSettings] = None) -> None:
    """Configure structlog and stdlib logging from the given (or global) settings."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # uvicorn and aiohttp log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def bind_instance(instance_id: str, app_name: str) -> None:
    """Attach the running instance to every subsequent event in this context."""
    structlog.contextvars.bind_contextvars(instance=instance_id, app=app_name)


def get_logger(name: Optional[str] = None):
    """Structured logger tagged with its component name."""
    return structlog.get_logger(component=name or "pulse_scanner")
