"""
Logging configuration using structlog for structured logging.

This module provides centralized logging setup for the CLI: JSON lines by
default, a human-readable console renderer when diagnostics are on.
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(log_level: str = "INFO", diagnostics: bool = False) -> None:
    """Configure structured logging.

    Log output goes to stderr so it never mixes with command output.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        diagnostics: Force DEBUG and render logs for humans
    """
    level = "DEBUG" if diagnostics else log_level.upper()
    renderer: Any = structlog.dev.ConsoleRenderer() if diagnostics else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # The credential backends log through the standard library
    logging.getLogger("app_signing").setLevel(level)

