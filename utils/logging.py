"""
Logging setup for the park linking job and the parks API.

Both entry points log to stdout and to a size-rotated file under logs/. The
linker logs as "park_linker" and the API as "parks_api"; library modules only
call logging.getLogger() with those names and never configure handlers.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PARK_LINKER_LOGGER = "park_linker"
API_LOGGER = "parks_api"

# Used when config.settings cannot be loaded (e.g. an invalid LINK_* override)
_DEFAULTS = {
    "LOG_LEVEL": "INFO",
    "LOG_MAX_BYTES": 5 * 1024 * 1024,
    "LOG_BACKUP_COUNT": 3,
    "PARK_LINKER_LOG_FILE": "logs/park_linker.log",
    "API_LOG_FILE": "logs/api.log",
}

try:
    from config.settings import config as _config
except (ImportError, ValueError):
    _config = None


def _setting(name: str):
    return getattr(_config, name, _DEFAULTS[name]) if _config else _DEFAULTS[name]


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    logger_name: str | None = None,
) -> logging.Logger:
    """
    Attach a stdout handler and a rotating file handler to a logger.

    Existing handlers are removed first, so calling this again (the API reloads,
    tests rebuild loggers) never duplicates output. If the log file cannot be
    opened the logger keeps working with stdout only.

    Args:
        log_level (str, optional): Level name such as 'INFO' or 'DEBUG'.
                                 Defaults to LOG_LEVEL from config.
        log_file (str, optional): Log file path. Defaults to logs/<logger_name>.log
        logger_name (str, optional): Logger to configure. Defaults to the root logger

    Returns:
        logging.Logger: The configured logger
    """
    log_level = log_level or _setting("LOG_LEVEL")
    log_file = log_file or f"logs/{logger_name or 'root'}.log"

    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    try:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=_setting("LOG_MAX_BYTES"),
            backupCount=_setting("LOG_BACKUP_COUNT"),
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.debug(f"Logging to {log_file} at {log_level.upper()}")
    except OSError as e:
        logger.warning(f"File logging to {log_file} unavailable ({e}); using stdout only")

    return logger


def setup_park_linker_logging(log_level: str | None = None) -> logging.Logger:
    """Configure the park linking job's logger (logs/park_linker.log by default)."""
    return setup_logging(
        log_level, _setting("PARK_LINKER_LOG_FILE"), PARK_LINKER_LOGGER
    )


def setup_api_logging(log_level: str | None = None) -> logging.Logger:
    """Configure the API logger (logs/api.log by default)."""
    return setup_logging(log_level, _setting("API_LOG_FILE"), API_LOGGER)
