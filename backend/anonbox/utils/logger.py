# anonbox/utils/logger.py

import logging
import sys

from anonbox.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logger(level: str | None = None) -> logging.Logger:
    """
    Configure the root "anonbox" logger once.
    Calling it again only adjusts the level.
    """
    logger = logging.getLogger("anonbox")
    logger.setLevel((level or get_settings().LOG_LEVEL).upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
