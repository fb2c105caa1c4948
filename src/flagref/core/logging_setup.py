"""
Logging setup for flagref.

Routes log records to stderr through a Rich handler so they do not mix with
the scan report printed on stdout.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from flagref.core.config import LoggingConfig


def setup_logging(config: Optional[LoggingConfig] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure the ``flagref`` logger.

    Args:
        config: Logging section of the configuration
        verbose: Force DEBUG level and show source locations

    Returns:
        The configured ``flagref`` logger
    """
    config = config or LoggingConfig()

    if verbose:
        level = logging.DEBUG
    else:
        level = logging.getLevelName(str(config.level).upper())
        if not isinstance(level, int):
            level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=verbose,
        show_path=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter(config.format))

    logger = logging.getLogger("flagref")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    return logger
