"""Logging configuration for the pipeline and its CLI."""
import logging
import os
from logging.config import dictConfig


def configure_logging(level: str | None = None) -> None:
    """Apply one console logging configuration for the whole process."""
    log_level = (level or os.getenv("INSIGHT_LOG_LEVEL", "INFO")).upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "level": log_level,
                },
            },
            "root": {"handlers": ["console"], "level": log_level},
            # The SDK's HTTP client logs every request at INFO.
            "loggers": {
                "httpx": {"level": "WARNING"},
                "anthropic": {"level": "WARNING"},
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s level", log_level)
