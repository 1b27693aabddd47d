"""Structured logging utilities."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from instructor_payments.utils.config import get_settings


PACKAGE_LOGGER = "instructor_payments"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_HANDLER: Optional[logging.Handler] = None


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach the stdout handler to the package logger once; later calls only set the level."""

    global _HANDLER
    resolved_level = (level or get_settings().log_level).upper()

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _HANDLER is None:
        _HANDLER = logging.StreamHandler(sys.stdout)
        _HANDLER.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(_HANDLER)
    package_logger.setLevel(resolved_level)
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace for the requested module."""
    if _HANDLER is None:
        configure_logging()
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
