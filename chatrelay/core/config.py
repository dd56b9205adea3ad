# chatrelay/core/config.py
from __future__ import annotations

import os
from typing import Any, List

from dotenv import load_dotenv

_TRUTHY = {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


class Settings:
    """
    Setup environment variables.
        - HISTORY_LIMIT how many messages each room keeps for replay
        - MAX_NAME_LENGTH / MAX_ROOM_LENGTH / MAX_MESSAGE_LENGTH truncation limits
        - DEFAULT_NAME / DEFAULT_ROOM substituted when a name normalizes to empty
        - REAP_EMPTY_ROOMS drop a room from the registry when its last member leaves
        - OUTBOX_MAX_SIZE bound of each connection's outbound queue
        - CORS_ORIGINS comma separated list of allowed origins
        - HOST / PORT bind address when run as a script
        - LOG_LEVEL root logger level name

    Keyword arguments override whatever the environment says.
    """

    def __init__(self, **overrides: Any) -> None:
        # Load environment variables from the .env file
        load_dotenv()

        self.HISTORY_LIMIT: int = _env_int("HISTORY_LIMIT", 100)
        self.MAX_NAME_LENGTH: int = _env_int("MAX_NAME_LENGTH", 24)
        self.MAX_ROOM_LENGTH: int = _env_int("MAX_ROOM_LENGTH", 32)
        self.MAX_MESSAGE_LENGTH: int = _env_int("MAX_MESSAGE_LENGTH", 500)

        self.DEFAULT_NAME: str = os.getenv("DEFAULT_NAME", "Guest")
        self.DEFAULT_ROOM: str = os.getenv("DEFAULT_ROOM", "general")

        self.REAP_EMPTY_ROOMS: bool = _env_bool("REAP_EMPTY_ROOMS", False)
        self.OUTBOX_MAX_SIZE: int = _env_int("OUTBOX_MAX_SIZE", 1000)

        self.CORS_ORIGINS: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]

        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = _env_int("PORT", 3000)
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)


settings = Settings()
