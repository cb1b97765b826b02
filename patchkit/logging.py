import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """
    Attach a stderr handler to the `patchkit` logger, once.

    Level defaults to PATCHKIT_LOG_LEVEL, then WARNING. Propagation is
    disabled so host applications don't print records twice.
    """

    if level is None:
        level = os.getenv("PATCHKIT_LOG_LEVEL", "WARNING").upper()

    logger = logging.getLogger("patchkit")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
