"""Logging configuration helpers for the Product Hunt scraper.

Handlers live on the package logger; module loggers propagate to it. ``LOG_DIR``
and ``LOG_LEVEL`` are read when handlers are built, so entry points that load a
``.env`` file call ``configure_logging(force=True)`` afterwards.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

PACKAGE_LOGGER = "producthunt_scraper"
LOG_FILENAME = "app.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _log_dir() -> str:
    return os.getenv("LOG_DIR", "logs")


def _log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def configure_logging(force: bool = False) -> logging.Logger:
    """Attach console and rotating file handlers to the package logger."""
    root = logging.getLogger(PACKAGE_LOGGER)
    if root.handlers and not force:
        return root

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    level = _log_level()
    log_dir = _log_dir()
    os.makedirs(log_dir, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILENAME),
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root.addHandler(file_handler)
    root.addHandler(console_handler)
    root.setLevel(level)
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package logger, configuring it on first use."""
    configure_logging()
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
