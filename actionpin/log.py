"""Logging setup for the command line.

Library modules only ever call ``loguru.logger``; sinks are configured here,
once, by the CLI.
"""

from __future__ import annotations

import sys

from loguru import logger

_FORMAT = "<level>{level: <8}</level> | {message}"
_VERBOSE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}"


def configure_logging(verbose: bool = False) -> None:
    """Replace loguru's default sink with a stderr sink at INFO (DEBUG if *verbose*)."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format=_VERBOSE_FORMAT if verbose else _FORMAT,
        colorize=None,
    )
