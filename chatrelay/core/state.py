# chatrelay/core/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import Request, WebSocket

from chatrelay.core.config import Settings
from chatrelay.services.connection_manager import ConnectionManager
from chatrelay.services.room_manager import RoomManager


@dataclass
class RelayState:
    """
    Everything the relay shares between connections.

    Built once per application in the lifespan handler and stored on
    ``app.state.relay``; never a module-level singleton.
    """

    settings: Settings
    room_manager: RoomManager
    connection_manager: ConnectionManager
    app_start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelayState":
        room_manager = RoomManager(
            history_limit=settings.HISTORY_LIMIT,
            max_room_length=settings.MAX_ROOM_LENGTH,
            default_room=settings.DEFAULT_ROOM,
            reap_empty_rooms=settings.REAP_EMPTY_ROOMS,
        )
        connection_manager = ConnectionManager(
            room_manager=room_manager,
            max_name_length=settings.MAX_NAME_LENGTH,
            default_name=settings.DEFAULT_NAME,
            max_message_length=settings.MAX_MESSAGE_LENGTH,
        )
        return cls(settings=settings, room_manager=room_manager, connection_manager=connection_manager)

    @property
    def message_counter(self) -> int:
        return self.connection_manager.message_counter

    def close(self) -> None:
        self.connection_manager.close()


def get_relay_state(request: Request) -> RelayState:
    """FastAPI dependency for HTTP routes."""
    return request.app.state.relay


def get_ws_relay_state(websocket: WebSocket) -> RelayState:
    """FastAPI dependency for WebSocket routes."""
    return websocket.app.state.relay
