"""Logging helpers for the Snowfight leaderboard."""
from __future__ import annotations

from logging.config import dictConfig
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are too chatty at INFO for batch jobs.
QUIET_LOGGERS = ("httpx", "httpcore")


def build_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Return a dictConfig mapping with one console handler on the root logger."""

    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
            }
        },
        "loggers": {
            "snowfight": {"level": level},
            **{name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        },
        "root": {"level": level, "handlers": ["console"]},
    }


def setup_logging(level: str = "INFO") -> None:
    dictConfig(build_logging_config(level))
