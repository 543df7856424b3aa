# stacker/logging_config.py
"""
Loguru configuration for stacking runs.

Routes logs to stdout/stderr based on severity so operators (and log
collectors) can tell failures apart:
- DEBUG/INFO/WARNING → stdout
- ERROR/CRITICAL → stderr

Bound context (account index, heights, cycles, tx args) is appended to each
line so a run can be audited after the fact.
"""

import logging
import os
import sys

from loguru import logger

from stacker.pox.errors import ConfigurationError

LOG_FORMAT = "<level>{level: <8}</level> | {message} | {extra}"


def _info_and_below(record) -> bool:
    return record["level"].no < logger.level("ERROR").no


def _error_and_above(record) -> bool:
    return record["level"].no >= logger.level("ERROR").no


class InterceptHandler(logging.Handler):
    """Forward standard library log records (aiohttp, asyncio) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def resolve_log_level(log_level: str | None = None) -> str:
    level = (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    try:
        logger.level(level)
    except ValueError:
        raise ConfigurationError(f"Invalid log level: {level!r}")
    return level


def setup_loguru_config(log_level: str | None = None) -> None:
    """Install the stdout/stderr sinks.

    Raises:
        ConfigurationError: the level is not a known loguru level. Existing
            handlers are left untouched in that case.
    """
    level = resolve_log_level(log_level)

    # Remove default loguru handler
    logger.remove()

    logger.add(
        sys.stdout,
        colorize=True,
        format=LOG_FORMAT,
        level=level,
        filter=_info_and_below,
    )
    logger.add(
        sys.stderr,
        colorize=True,
        format=LOG_FORMAT,
        level=level,
        filter=_error_and_above,
    )

    logging.root.handlers.clear()
    logging.root.addHandler(InterceptHandler())
    logging.root.setLevel(level)
