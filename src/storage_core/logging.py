"""
Logging configuration and utilities for storage core
"""
import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict, Optional
import json

LOGGER_NAME = 'storage_core'

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# LogRecord attributes that are not user supplied ``extra`` fields
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def build_logging_config(settings) -> Dict[str, Any]:
    """
    Build a dictConfig mapping for the ``storage_core`` logger.

    Records go to stderr and, when ``settings.log_file`` is set, to a
    rotating file as well. Only the package logger is configured, so the
    host application's root logger is left alone.

    Args:
        settings: StorageSettings supplying log_level, log_file and log_json

    Returns:
        Mapping accepted by ``logging.config.dictConfig``
    """
    if settings.log_json:
        formatter: Dict[str, Any] = {'()': JsonFormatter}
    else:
        formatter = {'format': PLAIN_FORMAT}

    handlers: Dict[str, Dict[str, Any]] = {
        'stderr': {
            'class': 'logging.StreamHandler',
            'formatter': 'storage',
            'stream': sys.stderr,
        },
    }
    if settings.log_file:
        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'storage',
            'filename': str(settings.log_file),
            'maxBytes': LOG_FILE_MAX_BYTES,
            'backupCount': LOG_FILE_BACKUPS,
            'encoding': 'utf-8',
        }

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {'storage': formatter},
        'handlers': handlers,
        'loggers': {
            LOGGER_NAME: {
                'level': settings.log_level,
                'handlers': list(handlers),
                'propagate': False,
            },
        },
    }


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def configure_logging(settings=None) -> logging.Logger:
    """Apply logging settings to the ``storage_core`` logger and return it."""
    if settings is None:
        from .config import StorageSettings

        settings = StorageSettings()
    settings.validate()

    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings))

    logger = get_logger()
    logger.debug(f"Logging initialized with level: {settings.log_level}")
    if settings.log_file:
        logger.debug(f"Log file: {settings.log_file}")
    return logger


def configure_logging_from_env(environ: Optional[Dict[str, str]] = None) -> logging.Logger:
    """Configure logging from STORAGE_CORE_LOG_* environment variables."""
    from .config import load_settings

    return configure_logging(load_settings(environ=environ))
