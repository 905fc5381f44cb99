"""Package-local logging.

The package emits nothing unless the host application configures logging.
The CLI opts in through ``--log-level`` or ``REFHARVEST_LOG_LEVEL``.
"""
from __future__ import annotations

import logging
import os

LOGGER_NAME = "reference_harvester"
LOG_LEVEL_ENV = "REFHARVEST_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def configure_logging(level: str | None = None) -> None:
    """Attach a stderr handler at ``level``; without a level, stay silent."""
    raw_level = level if level is not None else os.getenv(LOG_LEVEL_ENV, "")
    resolved = (raw_level or "").strip()
    pkg_logger = logging.getLogger(LOGGER_NAME)
    # reset so repeated CLI calls don't stack handlers
    pkg_logger.handlers = []

    if not resolved:
        pkg_logger.addHandler(logging.NullHandler())
        pkg_logger.setLevel(logging.NOTSET)
        pkg_logger.propagate = True
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(getattr(logging, resolved.upper(), logging.INFO))
    pkg_logger.propagate = False
