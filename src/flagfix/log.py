"""Loguru setup for the flagfix CLI."""

import sys

from loguru import logger

_FORMAT = "<level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>"


def setup_logging(level: str = "WARNING"):
    """Route flagfix log records to stderr at *level*.

    Parameters
    ----------
    level : str
        Logging level (DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL)
    """
    logger.remove()
    logger.add(sys.stderr, format=_FORMAT, level=level, colorize=True)
    logger.enable("flagfix")
    return logger
