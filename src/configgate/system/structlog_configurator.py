"""Structlog-based logging configuration for configgate.

Output goes to stderr so that command output on stdout stays clean.
JSON is used for production deployments and a human-readable console
renderer for development, unless the config says otherwise.
"""

import logging
import os
import sys
from collections.abc import Callable
from typing import Any

import structlog

from configgate.config.models import LoggingConfig


def is_development_environment() -> bool:
    """Check whether CONFIGGATE_ENV selects development mode."""
    return os.environ.get("CONFIGGATE_ENV", "production") == "development"


def _add_static_context(extra_fields: dict[str, str]) -> Callable:
    """Processor to add static context fields to all log entries."""

    def processor(
        logger: structlog.BoundLogger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.update(extra_fields)
        return event_dict

    return processor


def _configure_processors(config: LoggingConfig, is_development: bool) -> list:
    """Configure structlog processors based on environment."""
    processors = [
        structlog.contextvars.merge_contextvars,
        _add_static_context(dict(config.extra_fields)),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]

    # Add caller info if requested
    if config.include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder())

    use_json = config.json_logs
    if use_json is None:
        use_json = not is_development

    if use_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    return processors


def _configure_handlers(log_level: int) -> None:
    """Route the stdlib root logger to stderr."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)


def configure_structlog(config: LoggingConfig) -> None:
    """Configure structlog-based logging system.

    Args:
        config: Logging settings from the loaded configuration.
    """
    is_development = is_development_environment()
    log_level = getattr(logging, config.level.upper(), logging.INFO)

    structlog.configure(
        processors=_configure_processors(config, is_development),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configure_handlers(log_level)

    logger = structlog.get_logger(__name__)
    logger.debug(
        "Structured logging configured",
        log_level=config.level,
        development=is_development,
        json_output=config.json_logs,
    )
