"""Logging configuration for the application."""

import logging
import sys
import os
from typing import Optional

import config

LOGGER_NAME = "FormGrader"

_logger: Optional[logging.Logger] = None

def setup_logger(log_file: Optional[str] = config.LOG_FILE) -> logging.Logger:
    """Sets up and returns the application logger.

    Configures a logger that outputs to the console and, when `log_file` is
    given, to a UTF-8 file. The level comes from the DEBUG flag in config.

    Args:
        log_file: Path of the log file, or None to log to the console only.

    Returns:
        logging.Logger: The configured application logger.
    """
    global _logger
    if _logger:
        return _logger

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.LOG_LEVEL)

    # Prevent adding multiple handlers if called again
    if not logger.handlers:
        formatter = logging.Formatter(config.LOG_FORMAT)

        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(config.LOG_LEVEL)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

        if log_file:
            try:
                log_dir = os.path.dirname(log_file)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir)

                fh = logging.FileHandler(log_file, mode='a', encoding='utf-8')
                fh.setLevel(config.LOG_LEVEL)
                fh.setFormatter(formatter)
                logger.addHandler(fh)
            except OSError as e:
                # Continue without file logging
                logger.error(f"Failed to create file handler for {log_file}: {e}", exc_info=config.DEBUG)

    _logger = logger

    if config.DEBUG:
        logger.debug("Logger initialized in DEBUG mode.")
    else:
        logger.info("Logger initialized.")

    return logger

def get_logger() -> logging.Logger:
    """Returns the singleton logger instance, setting it up if necessary."""
    if _logger is None:
        return setup_logger()
    return _logger
