# chatrelay/core/logging.py

import logging
import os
import sys
from typing import Optional


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Per-frame chatter from the WebSocket protocol stack uvicorn runs on
QUIET_LOGGERS = ("websockets", "websockets.protocol", "websockets.server", "wsproto")


def resolve_level(name: Optional[str]) -> int:
    """Map a level name ("debug", "INFO", ...) to its number, INFO when unknown."""
    level = getattr(logging, (name or "INFO").strip().upper(), None)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level_name: Optional[str] = None) -> None:
    """
    Configure relay logging.

    - Level from ``level_name``, else the LOG_LEVEL env var, else INFO
    - One stdout handler, unless a server (uvicorn) already installed one
    - WebSocket protocol libraries held at WARNING; relay lifecycle logs
      (joins, switches, leaves) stay visible at INFO
    """
    level = resolve_level(level_name or os.getenv("LOG_LEVEL"))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(max(level, logging.INFO))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Usage:
        from chatrelay.core.logging import get_logger

        logger = get_logger(__name__)
        logger.info("→ %s joined '%s'", name, room)
    """
    return logging.getLogger(name)
