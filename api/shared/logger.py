"""
Logging for the dmp backend.

Everything goes through the stdlib ``logging`` module. The flow editor's
mutation API never raises on stale ids; it reports them here at WARNING
level instead, so the log is where a dropped command becomes visible.

Usage:
    from api.shared.logger import get_logger

    logger = get_logger(__name__)
    logger.warning("delete_edge: edge %s not found", edge_id)
"""

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# Per-request access lines drown out stale-id warnings unless debugging.
_NOISY_LOGGERS = ("uvicorn.access",)

_configured = False


def resolve_level(level: Union[str, int, None]) -> int:
    """Numeric level for a name such as ``"debug"`` or an int; INFO otherwise."""
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    value = logging.getLevelName(name)
    if isinstance(value, int):
        return value
    return logging.INFO


def setup_logging(level: Union[str, int] = "INFO") -> None:
    """Configure root logging once, at startup (main.py).

    Later calls are ignored. An unknown level name falls back to INFO and is
    reported once the handler is in place.
    """
    global _configured
    if _configured:
        return

    numeric = resolve_level(level)
    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    if numeric > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
    _configured = True

    if isinstance(level, str) and not isinstance(logging.getLevelName(level.strip().upper()), int):
        get_logger(__name__).warning("Unknown log level %r, using INFO", level)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass ``__name__``."""
    return logging.getLogger(name)
