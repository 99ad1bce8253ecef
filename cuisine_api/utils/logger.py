"""
Logging configuration
"""
import logging
import sys
from typing import Any, Mapping

from cuisine_api.config import get_settings

settings = get_settings()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Request fields that must never reach a log line
SECRET_FIELDS = {"password", "password_hash", "token"}


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    return logger


def redact(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of a request payload with secret fields masked, safe to log."""
    return {
        key: ("***" if key in SECRET_FIELDS else value)
        for key, value in payload.items()
    }
