"""Logging configuration for mdview."""

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False) -> None:
    """Route diagnostics to stderr, at DEBUG when verbose."""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level, format="mdview {level: <7} {message}")
