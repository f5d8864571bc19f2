from __future__ import annotations

import logging
import os

LOGGER_NAME = "pathfinder"
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def debug_enabled() -> bool:
    return os.environ.get("PATHFINDER_DEBUG", "").strip().lower() == "true"


def configure_logging(debug: bool | None = None) -> logging.Logger:
    """Attach a single stderr handler to the ``pathfinder`` logger tree."""
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if (debug if debug is not None else debug_enabled()) else logging.INFO
    logger.setLevel(level)
    if logger.handlers:
        return logger

    logger.propagate = False
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
