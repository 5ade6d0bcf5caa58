from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "neural_feed"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def level_from_string(level: str) -> int:
    return _LEVELS.get((level or "").strip().lower(), logging.INFO)


def setup_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level_from_string(level))
    logger.handlers = []
    logger.propagate = False

    # stdout carries event output, so log records go to stderr.
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_level=True,
        show_path=False,
    )
    handler.setLevel(level_from_string(level))
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
