"""Logging configuration."""

import logging
import sys

from solr_indexer.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request noise from the HTTP stack
_QUIET_LOGGERS = ("aiohttp.access", "aiohttp.client", "uvicorn.access")


def setup_logging(level: str | None = None) -> None:
    """Configure application logging.

    Args:
        level: Level name overriding ``LOG_LEVEL``; DEBUG when ``settings.debug`` is set.
    """
    settings = get_settings()
    resolved = level or ("DEBUG" if settings.debug else settings.log_level)

    logging.basicConfig(
        level=resolved.upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if resolved.upper() != "DEBUG":
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module of the indexer.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        logging.Logger: Logger instance.
    """
    return logging.getLogger(name)
