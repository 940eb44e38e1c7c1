"""Centralized logging configuration for the pantry package.

Usage:
    from pantry.core.logging import get_logger
    logger = get_logger(__name__)

The level comes from ``LOG_LEVEL`` (DEBUG, INFO, WARNING, ERROR); INFO if unset
or unknown.
"""

import logging
import sys

DEFAULT_LOG_LEVEL = logging.INFO

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FORMAT_DEBUG = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"

ROOT_LOGGER_NAME = "pantry"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

_logging_configured = False


def configure_logging(level: int | None = None) -> None:
    """Attach a stderr handler to the ``pantry`` logger, once.

    Args:
        level: Log level to use. If None, reads ``settings.LOG_LEVEL``.
    """
    global _logging_configured

    if _logging_configured:
        return

    if level is None:
        # imported here: config must stay importable without logging set up
        from pantry.core.config import settings

        level = _LEVELS.get(settings.LOG_LEVEL.upper(), DEFAULT_LOG_LEVEL)

    log_format = LOG_FORMAT_DEBUG if level == logging.DEBUG else LOG_FORMAT

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(log_format))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``pantry`` namespace.

    Args:
        name: Module name, typically __name__
    """
    configure_logging()

    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int) -> None:
    """Change the log level at runtime."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    for handler in logger.handlers:
        if level == logging.DEBUG:
            handler.setFormatter(logging.Formatter(LOG_FORMAT_DEBUG))
        else:
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
