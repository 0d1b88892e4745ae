"""Logging helpers for the mode engine.

All modules share a single ``mode_engine`` logger obtained through
``get_logger()`` so that handlers are configured in one place.
"""

import logging
import sys

LOGGER_NAME = "mode_engine"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the engine logger, or a child logger when ``name`` is given."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def setup_logging(
    level: str = "INFO",
    debug: bool = False,
    stream=None,
) -> logging.Logger:
    """Configure the engine logger with a stream handler.

    Safe to call more than once; only the level is updated on later calls.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...)
        debug: Force DEBUG level regardless of ``level``
        stream: Output stream, defaults to stderr

    Returns:
        The configured engine logger
    """
    global _configured

    logger = get_logger()
    resolved = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(resolved)

    if not _configured:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        logger.addHandler(handler)
        _configured = True

    return logger
