"""Structured logging setup using structlog."""
import logging
from typing import Any, Optional

import structlog

from simplifly.core.config import Settings, settings as default_settings


_CONFIGURED = False


def configure_logging(settings: Optional[Settings] = None, force: bool = False) -> None:
    """Initialize structlog once; JSON output unless LOG_JSON is disabled."""
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    settings = settings or default_settings
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(level=level, format="%(message)s")

    renderer: Any
    if settings.LOG_JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # Module-level loggers must pick up a later reconfiguration
        cache_logger_on_first_use=False,
    )

    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)
