"""Logger setup shared by every insightsync module."""

from __future__ import annotations

import logging
import os
from typing import Final

_HANDLER_ATTACHED: bool = False
_LEVEL_OVERRIDE: int | None = None
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level() -> int:
    if _LEVEL_OVERRIDE is not None:
        return _LEVEL_OVERRIDE
    level_name = os.getenv("INSIGHTSYNC_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _attach_handler(level: int) -> None:
    global _HANDLER_ATTACHED

    root = logging.getLogger()
    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        _HANDLER_ATTACHED = True
    root.setLevel(level)


def configure_logging(verbose: bool = False) -> None:
    """Pin the process log level (used by the CLI's --verbose switch)."""
    global _LEVEL_OVERRIDE

    _LEVEL_OVERRIDE = logging.DEBUG if verbose else None
    level = _resolve_level()
    _attach_handler(level)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("insightsync"):
            logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger configured with a single stream handler."""
    level = _resolve_level()
    _attach_handler(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
