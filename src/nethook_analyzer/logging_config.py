"""Logging configuration for the NetHook dump analyzer."""

import os
import sys

from loguru import logger

LOG_LEVEL_ENV = "NETHOOK_LOG_LEVEL"


def configure_logging(*, verbose: bool = False) -> None:
    """Send loguru output to stderr only, at DEBUG when verbose.

    ``NETHOOK_LOG_LEVEL`` overrides the level; the MCP server has no flags
    and stdout carries its protocol stream.
    """
    logger.remove()
    level = os.environ.get(LOG_LEVEL_ENV, "").upper() or ("DEBUG" if verbose else "INFO")
    logger.add(sys.stderr, level=level, format="{time:HH:mm:ss} {level.icon} {message}")
