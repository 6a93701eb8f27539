"""
Logging setup for the service.

Every module logs through ``logging.getLogger(__name__)``; this module only
attaches the handler once, at startup.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger.

    Safe to call more than once (tests build several apps per session):
    the handler is only added the first time.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG"

    Returns:
        The ``shorturl_app`` package logger
    """
    logger = logging.getLogger("shorturl_app")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
