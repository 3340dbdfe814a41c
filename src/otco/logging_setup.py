"""Logging configuration for the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVELS = ("error", "warning", "info", "debug")


def configure_logging(level: str = "warning") -> int:
    """Send otco log records to stderr through rich.

    Unknown level names fall back to WARNING. Returns the numeric level.
    """
    numeric = getattr(logging, (level or "warning").upper(), None)
    if not isinstance(numeric, int):
        numeric = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("otco")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(numeric)
    return numeric
