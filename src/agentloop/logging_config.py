"""Logging setup for the agentloop CLI and embedding hosts."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "agentloop"
LOG_LEVEL_ENV = "AGENTLOOP_LOG_LEVEL"


def setup_logging(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """
    Configure the ``agentloop`` logger with a stderr handler and, optionally,
    a rotating file handler.

    Args:
        level: Log level name. Defaults to $AGENTLOOP_LOG_LEVEL, then INFO.
        log_file: Path of a log file to add. Empty or None disables it.

    Returns:
        The configured package logger
    """
    level = level or os.getenv(LOG_LEVEL_ENV, "INFO")
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    # Repeated calls only adjust the level
    if logger.handlers:
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(
                handler, RotatingFileHandler
            ):
                handler.setLevel(log_level)
        return logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
    )
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger
