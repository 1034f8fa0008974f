"""Logging setup for the billing backend."""

import logging
import logging.handlers
import os
import sys

from backend.core.conf import settings
from backend.core.path_conf import LOG_DIR


def _file_handler(filename: str, level: str, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=settings.LOG_FILE_MAX_BYTES,
        backupCount=settings.LOG_FILE_BACKUP_COUNT,
        encoding='utf-8',
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """
    Configure the root logger.

    Console output goes to stdout at ``LOG_STD_LEVEL``; the access file gets
    everything from ``LOG_FILE_ACCESS_LEVEL`` up and the error file only
    ``LOG_FILE_ERROR_LEVEL`` and above. Safe to call more than once.
    """
    os.makedirs(LOG_DIR, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Drop handlers from an earlier call so records are not duplicated
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    formatter = logging.Formatter(settings.LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(settings.LOG_STD_LEVEL)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_file_handler(settings.LOG_ACCESS_FILENAME, settings.LOG_FILE_ACCESS_LEVEL, formatter))
    root_logger.addHandler(_file_handler(settings.LOG_ERROR_FILENAME, settings.LOG_FILE_ERROR_LEVEL, formatter))

    # Quiet chatty libraries
    for name in ('httpx', 'httpcore', 'sqlalchemy.engine', 'uvicorn.access'):
        logging.getLogger(name).setLevel(logging.WARNING)
