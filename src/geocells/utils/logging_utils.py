"""Logging setup for the diagnostic scripts."""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "geocells"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_path: Path | None = None, level: int = logging.INFO) -> logging.Logger:
    """Attach console (and optionally file) handlers to the package logger.

    Library modules log through ``logging.getLogger(__name__)`` and therefore
    propagate to the ``geocells`` logger configured here. Calling this more than
    once leaves the existing handlers in place and only updates the level.

    Parameters
    ----------
    log_path : Path, optional
        File receiving a copy of every record. Parent directories are created.
    level : int
        Threshold applied to the logger and its handlers.

    Returns
    -------
    logging.Logger
        The configured ``geocells`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="w")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
