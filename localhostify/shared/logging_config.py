"""Python logging configuration for LocalHostify.

Components never configure logging themselves. Each one receives a
``logging.Logger`` (usually the per-site logger from ``get_site_logger``)
and the command-line entry point calls ``setup_logging`` once.

Environment Variables:
    LOG_LEVEL: Logging level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
    LOG_FORMAT: Log message format (default: see below)
"""

import os
import sys
import logging
from typing import Optional

ROOT_LOGGER_NAME = 'localhostify'

TRACE = 5

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_trace_logging() -> int:
    """Register the TRACE level and ``Logger.trace`` with Python's logging."""
    logging.addLevelName(TRACE, "TRACE")

    def trace(self, message, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, message, args, **kwargs)

    logging.Logger.trace = trace
    return TRACE


setup_trace_logging()


class ColoredFormatter(logging.Formatter):
    """Wraps each formatted record in its level's ANSI color."""

    COLORS = {
        'TRACE': '\033[90m',
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        msg = super().format(record)
        color = self.COLORS.get(record.levelname, '')
        if color:
            msg = f"{color}{msg}{self.RESET}"
        return msg


def resolve_level(log_level: str) -> int:
    """Convert a level name (including TRACE) to a logging constant."""
    log_level = log_level.upper()
    if log_level == 'TRACE':
        return TRACE
    return getattr(logging, log_level, logging.INFO)


def setup_logging(
    log_level: Optional[str] = None,
    use_colors: bool = True,
    log_format: Optional[str] = None
) -> logging.Logger:
    """Send all records to stdout at ``log_level`` (LOG_LEVEL when None).

    Colors are used only when stdout is a terminal. Replaces any handlers
    already on the root logger and returns it.
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    if log_format is None:
        log_format = os.getenv('LOG_FORMAT', DEFAULT_LOG_FORMAT)

    level = resolve_level(log_level)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if use_colors and sys.stdout.isatty():
        formatter = ColoredFormatter(log_format)
    else:
        formatter = logging.Formatter(log_format)

    console_handler.setFormatter(formatter)

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)

    root_logger.debug(f"Logging at {log_level.upper()}")

    return root_logger


def silence_noisy_loggers():
    """Reduce verbosity of noisy third-party loggers."""
    noisy_loggers = [
        'asyncio',
        'httpx',
        'httpcore',
        'hypercorn.access',
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_component_logger(component: str) -> logging.Logger:
    """Get the logger for a LocalHostify component (``localhostify.<component>``)."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")


def get_site_logger(site_name: str) -> logging.Logger:
    """Get the logger injected into every component serving one site."""
    return get_component_logger(f"site.{site_name}")
