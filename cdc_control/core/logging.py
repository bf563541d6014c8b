"""
Structured logging for the CDC control plane.

Job-scoped code binds ``job_id`` (and ``sharding_item``) once with
``bind_job_context``; every event logged in that context carries them.
"""

import logging
import sys
from typing import Optional

import structlog

from cdc_control.config.settings import CDCSettings, get_settings

_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "celery.app.trace", "kombu")


def setup_logging(settings: Optional[CDCSettings] = None) -> None:
    """Configure structlog and the stdlib root logger."""
    settings = settings or get_settings()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_job_context(job_id: str, sharding_item: Optional[int] = None) -> None:
    """Attach job identity to every event logged by the current task."""
    structlog.contextvars.clear_contextvars()
    if sharding_item is None:
        structlog.contextvars.bind_contextvars(job_id=job_id)
    else:
        structlog.contextvars.bind_contextvars(job_id=job_id, sharding_item=sharding_item)


def clear_job_context() -> None:
    structlog.contextvars.clear_contextvars()
