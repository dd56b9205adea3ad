# chatrelay/services/session.py

from __future__ import annotations

import threading
from enum import Enum
from typing import Optional

from chatrelay.services.outbox import Outbox


class SessionState(str, Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


class Session:
    """
    Per-connection identity and room pointer.

    ``lock`` serializes every transition of this one participant, so a
    switch racing a disconnect (or another switch) on the same connection
    sees a consistent ``room``. It is always taken before any room lock.
    """

    def __init__(self, connection_id: str, outbox: Outbox) -> None:
        self.connection_id = connection_id
        self.outbox = outbox
        self.name: Optional[str] = None
        self.avatar: Optional[str] = None
        self.room: Optional[str] = None
        self.disconnected = False
        self.lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        if self.disconnected:
            return SessionState.DISCONNECTED
        if self.room is None:
            return SessionState.CONNECTED
        return SessionState.JOINED

    def __repr__(self) -> str:
        return (
            f"Session(id={self.connection_id!r}, name={self.name!r}, "
            f"room={self.room!r}, state={self.state.value})"
        )
