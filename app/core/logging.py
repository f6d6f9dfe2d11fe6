"""Logging configuration and setup for the application.

This module provides structured logging configuration using structlog,
with environment-specific formatters and handlers. It supports both
console-friendly development logging and JSON-formatted production logging.
"""

import logging
import sys
from typing import List

import structlog
from structlog.types import Processor

from app.core.config import (
    Environment,
    settings,
)


def get_structlog_processors(include_file_info: bool = True) -> List[Processor]:
    """Get the structlog processors based on configuration.

    Args:
        include_file_info: Whether to include file information in the logs.

    Returns:
        List[Processor]: List of structlog processors.
    """
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.UnicodeDecoder(),
    ]

    if include_file_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.MODULE,
                }
            )
        )

    processors.append(lambda _, __, event_dict: {**event_dict, "environment": settings.ENVIRONMENT.value})

    return processors


def setup_logging() -> None:
    """Configure structlog with different formatters based on environment.

    In development: pretty console output
    In staging/production: structured JSON logs
    """
    log_level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    include_file_info = settings.ENVIRONMENT in (Environment.DEVELOPMENT, Environment.TEST)
    shared_processors = get_structlog_processors(include_file_info=include_file_info)

    if settings.LOG_FORMAT == "console" and settings.ENVIRONMENT not in (
        Environment.STAGING,
        Environment.PRODUCTION,
    ):
        renderer: Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


setup_logging()

logger = structlog.get_logger()
logger.info(
    "logging_initialized",
    environment=settings.ENVIRONMENT.value,
    log_level=settings.LOG_LEVEL,
    log_format=settings.LOG_FORMAT,
)
