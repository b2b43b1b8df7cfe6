# royaltymeds/core/logging.py
import logging.config

from royaltymeds.core.config import settings


def setup_logging(level: str | None = None) -> None:
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "default"},
        },
        "loggers": {
            "royaltymeds": {"handlers": ["console"], "level": level or settings.LOG_LEVEL, "propagate": False},
        },
    })
