"""
HOSTVEIL Logger
Logging setup shared by the engines, the session and the CLI.
"""

import logging
import sys
from functools import wraps
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Callable

from hostveil.config import LOGGING_SETTINGS


def setup_logger(name, level=None):
    """
    Create and configure a logger.

    Args:
        name: logger name (usually ``__name__``)
        level: log level name (defaults to the value from config)

    Returns:
        logging.Logger: Logger object
    """
    logger = logging.getLogger(name)

    # do not attach handlers twice
    if logger.handlers:
        return logger

    if level is None:
        level = LOGGING_SETTINGS.get('level', 'INFO')
    logger.setLevel(getattr(logging, level))

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if LOGGING_SETTINGS.get('file_logging', True):
        log_dir = Path(LOGGING_SETTINGS.get('log_dir', 'logs'))
        log_dir.mkdir(exist_ok=True)
        log_file = log_dir / LOGGING_SETTINGS.get('log_file', 'hostveil.log')

        # rotating file handler
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOGGING_SETTINGS.get('max_bytes', 2 * 1024 * 1024),
            backupCount=LOGGING_SETTINGS.get('backup_count', 3),
            encoding="utf-8",
        )
        file_handler.setLevel(getattr(logging, level))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def log_operation(operation_name):
    """Decorator recording when an operation starts, completes or fails.

    Usage: ``@log_operation("LSB Insert")``. Failures are logged and re-raised.
    """

    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__)
            logger.info(f"[{operation_name}] Started")
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                logger.error(f"[{operation_name}] FAILED: {exc}")
                raise
            logger.info(f"[{operation_name}] Completed")
            return result

        return wrapper

    return decorator
