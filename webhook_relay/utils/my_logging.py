# webhook_relay/utils/my_logging.py
"""Logging configuration"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from webhook_relay.config.settings import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5

WEBHOOK_LOGGER = "webhook_relay.services.webhook"


def _file_handler(path: str, level=logging.NOTSET) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logging(verbose=True):
    """Configure application logging"""
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    else:
        level = logging.WARNING

    handlers = [logging.StreamHandler(sys.stdout)]

    if settings.is_production:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        handlers.append(_file_handler(os.path.join(settings.LOG_DIR, "error.log"), logging.ERROR))
        handlers.append(_file_handler(os.path.join(settings.LOG_DIR, "combined.log")))

        logging.getLogger(WEBHOOK_LOGGER).addHandler(
            _file_handler(os.path.join(settings.LOG_DIR, "webhooks.log"))
        )

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    if not verbose:
        # Silence noisy loggers
        noisy_loggers = [
            "sqlalchemy",
            "sqlalchemy.engine",
            "sqlalchemy.pool",
            "alembic",
            "httpx",
            "uvicorn",
            "uvicorn.error",
            "uvicorn.access",
        ]
        for name in noisy_loggers:
            logger = logging.getLogger(name)
            logger.setLevel(logging.ERROR)
            logger.propagate = False
