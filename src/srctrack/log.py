"""Loguru sink setup shared by the CLI entrypoints"""

import sys

from loguru import logger


LOG_FORMAT = "<level>{level: <8}</level> | {name}:{function} - {message}"


def configure_logging(level: str = "WARNING") -> None:
    """Replace loguru's default handler with a single stderr sink at level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT, colorize=False)
