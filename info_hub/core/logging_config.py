"""
Logging configuration for Info Hub Aggregator Service.
Emits JSON records (python-json-logger) or plain text lines, chosen by LOG_FORMAT.
"""

import logging
import logging.config
import sys
from typing import Any, Dict
from pythonjsonlogger.json import JsonFormatter

from .config import settings

LOGGER_NAMESPACE = "info_hub"

# Third-party loggers that would otherwise log every outbound request
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEBUG_TEXT_FORMAT = TEXT_FORMAT + " [in %(pathname)s:%(lineno)d]"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging() -> None:
    """Configure the root and service loggers from settings."""
    if settings.log_format == "json":
        logging_config = get_json_logging_config()
    else:
        logging_config = get_text_logging_config()

    logging.config.dictConfig(logging_config)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _build_config(formatter: Dict[str, Any]) -> Dict[str, Any]:
    """dictConfig skeleton: one stdout handler shared by root and service loggers."""
    level = settings.log_level
    logger_config = {"handlers": ["console"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": sys.stdout
            }
        },
        "loggers": {
            "": dict(logger_config),
            LOGGER_NAMESPACE: dict(logger_config)
        }
    }


def get_json_logging_config() -> Dict[str, Any]:
    """One JSON object per record; ``extra={...}`` fields become top-level keys."""
    return _build_config({
        "()": JsonFormatter,
        "fmt": "%(asctime)s %(name)s %(levelname)s %(message)s %(module)s %(lineno)d",
        "datefmt": DATE_FORMAT,
        "rename_fields": {"asctime": "time", "levelname": "level"},
        "static_fields": {"service": settings.app_name}
    })


def get_text_logging_config() -> Dict[str, Any]:
    return _build_config({
        "format": DEBUG_TEXT_FORMAT if settings.log_level == "DEBUG" else TEXT_FORMAT,
        "datefmt": DATE_FORMAT
    })


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the service namespace."""
    if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


# Convenience function for getting loggers
def create_logger(module_name: str) -> logging.Logger:
    """Create a logger for a specific module."""
    return get_logger(module_name)
