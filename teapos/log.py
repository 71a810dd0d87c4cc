"""Logging setup: a dated log file plus console warnings."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from teapos.config import LOG_LEVEL, LOG_PATH

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_dir: str | Path = LOG_PATH, level: str = LOG_LEVEL, console: bool = False) -> Path | None:
    """Attach a file handler to the ``teapos`` logger and return the log file path.

    Returns None when the log directory cannot be created; logging must never
    stop the app from starting.
    """
    root = logging.getLogger("teapos")
    root.setLevel(level.upper())

    log_file: Path | None = Path(log_dir) / f"teapos_{datetime.now():%Y%m%d}.log"
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        log_file = None
    else:
        file_handler.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))
        root.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))
        root.addHandler(console_handler)

    root.info("teapos logging started file=%s level=%s", log_file, level.upper())
    return log_file
