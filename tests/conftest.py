"""Shared fixtures for the relay tests."""

import threading

import pytest

from chatrelay.services.connection_manager import ConnectionManager
from chatrelay.services.room_manager import RoomManager


class RecordingOutbox:
    """Outbox that remembers every frame delivered to it."""

    def __init__(self) -> None:
        self.frames: list[tuple[str, object]] = []
        self._lock = threading.Lock()

    def deliver(self, event: str, data: object) -> None:
        with self._lock:
            self.frames.append((event, data))

    def events(self, name: str | None = None) -> list:
        with self._lock:
            return [data for event, data in self.frames if name is None or event == name]

    def names(self) -> list[str]:
        with self._lock:
            return [event for event, _ in self.frames]

    def last(self, name: str):
        found = self.events(name)
        return found[-1] if found else None

    def clear(self) -> None:
        with self._lock:
            self.frames.clear()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def room_manager():
    return RoomManager()


@pytest.fixture
def manager(room_manager):
    return ConnectionManager(room_manager=room_manager)


@pytest.fixture
def connect(manager):
    """Open a connection with a recording outbox: ``outbox = connect("a")``."""

    def _connect(connection_id: str) -> RecordingOutbox:
        outbox = RecordingOutbox()
        manager.connect(outbox, connection_id=connection_id)
        return outbox

    return _connect
