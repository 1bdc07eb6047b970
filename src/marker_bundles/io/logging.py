"""Define utility functions to simplify logging to the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()
logger = logging.getLogger("marker_bundles")


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route the package's log records through a rich console handler.

    :param level: Minimum level of records emitted by the package logger
    """
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=console, rich_tracebacks=True, show_path=False))
    logger.setLevel(level)


def log_debug(message: str) -> None:
    """Log the given string as a debugging detail."""
    logger.debug(message)


def log_info(message: str) -> None:
    """Log the given string to standard output."""
    logger.info(message)


def log_warning(message: str) -> None:
    """Log the given string as a warning."""
    logger.warning(message)


def log_error(message: str) -> None:
    """Log the given string as an error."""
    logger.error(message)
