"""Logging configuration for the Ordering domain."""

import logging
import os

import structlog

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure structlog once per process.

    JSON lines in production, human-readable console output elsewhere.
    """
    global _configured
    if _configured:
        return

    log_level = getattr(logging, (level or os.environ.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    renderer = (
        structlog.processors.JSONRenderer()
        if os.environ.get("PROTEAN_ENV") == "production"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    # Suppress noisy library loggers
    logging.getLogger("protean").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str):
    return structlog.get_logger(name)
