"""
cdp_har/utils/logger.py

Package-wide logger factory.
"""

import logging

from cdp_har.config import Config

PACKAGE_LOGGER_NAME = "cdp_har"

_configured = False


def _configure_package_logger() -> None:
    """Attach a single stream handler to the package logger (idempotent)."""
    global _configured
    if _configured:
        return
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=Config.LOG_FORMAT, datefmt=Config.LOG_DATE_FORMAT))
        package_logger.addHandler(handler)
    package_logger.setLevel(Config.LOG_LEVEL)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger for the given module name.
    Loggers under the `cdp_har` namespace share the package handler configured from Config.
    Args:
        name: Usually `__name__` of the calling module.
    Returns:
        The logger.
    """
    _configure_package_logger()
    return logging.getLogger(name)
