"""File logging for the console.

The terminal belongs to the console while it runs, so records only ever go
to a file under the user log directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from platformdirs import user_log_dir

from .config import APP_NAME

LOG_FILENAME = "clustermenu.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
PACKAGE_LOGGER = "clustermenu"


def default_log_path() -> Path:
    return Path(user_log_dir(APP_NAME, appauthor=False)) / LOG_FILENAME


def setup_logging(level: int = logging.INFO, path: Path | None = None) -> logging.Logger:
    """Attach one file handler to the package logger.

    When the log file cannot be opened a ``NullHandler`` is used instead, so
    nothing leaks onto the console screen. Calling this again is a no-op.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.handlers:
        return logger
    logger.setLevel(level)
    logger.propagate = False

    log_path = default_log_path() if path is None else path
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
