"""Logging configuration using structlog.

Engine modules emit structured events (``positions_calculated``,
``oversell_detected``, ``price_lookup_failed`` ...) through module-level
structlog loggers. Applications call ``configure_logging`` once at startup.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog
from structlog.typing import Processor

from tradejournal.config.settings import get_settings
from tradejournal.core.exceptions import ConfigurationError


def _add_app_context(app_name: str, app_version: str) -> Processor:
    """Stamp every event with the application name and version."""

    def processor(
        logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("version", app_version)
        return event_dict

    return processor


def configure_logging(level: str | None = None, *, json_logs: bool | None = None) -> None:
    """Configure structlog for the application.

    Args:
        level: Minimum level name. Defaults to ``settings.log_level``.
        json_logs: Force JSON (True) or console (False) rendering. Defaults
            to JSON unless ``settings.debug`` is set.

    Raises:
        ConfigurationError: If ``level`` is not a known level name.
    """
    settings = get_settings()

    level_name = (level or settings.log_level).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        raise ConfigurationError(f"Unknown log level: {level}")

    use_json = not settings.debug if json_logs is None else json_logs

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _add_app_context(settings.app_name, settings.app_version),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Third-party libraries log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
