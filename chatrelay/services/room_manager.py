# chatrelay/services/room_manager.py

from __future__ import annotations

import logging
import threading
from collections import deque
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, Iterator, List, Optional

from chatrelay.models.models import ChatMessage, RoomDirectory
from chatrelay.services.normalization import normalize_room
from chatrelay.services.outbox import Outbox

logger = logging.getLogger(__name__)


@dataclass
class Member:
    """Membership record of one connection inside one room."""

    connection_id: str
    name: str
    avatar: Optional[str]
    outbox: Outbox


# ============================================================================
# ROOM
# ============================================================================

class Room:
    """
    Participant set plus bounded message history for a single room.

    Every method below expects ``lock`` to be held by the caller. Use
    ``locked_rooms`` when more than one room is involved so locks are always
    taken in name order.

    Attributes:
        name: normalized room name
        members: connection_id -> Member, in join order
        history: last ``history_limit`` messages, oldest first
        closed: set once the registry reclaimed this room; a closed room
                must not gain members
    """

    def __init__(self, name: str, history_limit: int = 100) -> None:
        self.name = name
        self.lock = threading.Lock()
        self.members: Dict[str, Member] = {}
        self.history: Deque[ChatMessage] = deque(maxlen=history_limit)
        self.closed = False

    @property
    def online(self) -> int:
        return len(self.members)

    def add_member(self, member: Member) -> None:
        self.members[member.connection_id] = member

    def remove_member(self, connection_id: str) -> Optional[Member]:
        return self.members.pop(connection_id, None)

    def has_member(self, connection_id: str) -> bool:
        return connection_id in self.members

    def append(self, message: ChatMessage) -> None:
        # deque(maxlen) evicts the oldest entry on overflow
        self.history.append(message)

    def history_snapshot(self) -> List[ChatMessage]:
        return list(self.history)

    def __repr__(self) -> str:
        return f"Room(name={self.name!r}, online={len(self.members)}, history={len(self.history)})"


@contextmanager
def locked_rooms(rooms: Iterable[Room]) -> Iterator[None]:
    """Acquire the locks of several rooms in normalized-name order."""
    unique = {id(room): room for room in rooms}.values()
    ordered = sorted(unique, key=lambda r: (r.name, id(r)))
    with ExitStack() as stack:
        for room in ordered:
            stack.enter_context(room.lock)
        yield


# ============================================================================
# ROOM REGISTRY
# ============================================================================

class RoomManager:
    """
    Registry of rooms addressed by normalized name.

    Rooms are created lazily on first reference and, unless
    ``reap_empty_rooms`` is enabled, stay resident after their last member
    leaves. The registry's own lock only guards the name -> Room mapping and
    is never held while acquiring a room lock.

    Usage:
        room_manager = RoomManager()
        room = room_manager.get_or_create("  General ")   # -> room "general"
        room_manager.snapshot()                           # {"general": 0}
    """

    def __init__(
        self,
        history_limit: int = 100,
        max_room_length: int = 32,
        default_room: str = "general",
        reap_empty_rooms: bool = False,
    ) -> None:
        self.history_limit = history_limit
        self.max_room_length = max_room_length
        self.default_room = default_room
        self.reap_empty_rooms = reap_empty_rooms

        self.rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def normalize(self, name: object) -> str:
        return normalize_room(name, self.max_room_length, self.default_room)

    def get_or_create(self, name: object) -> Room:
        """
        Return the room for ``name``, creating it if needed.

        Idempotent: repeated calls with names that normalize the same way
        return the same Room instance (until it is reclaimed).
        """
        key = self.normalize(name)
        with self._lock:
            room = self.rooms.get(key)
            if room is None:
                room = Room(key, self.history_limit)
                self.rooms[key] = room
                logger.info("✓ Created room '%s'", key)
            return room

    def get_room(self, name: object) -> Optional[Room]:
        with self._lock:
            return self.rooms.get(self.normalize(name))

    def list_rooms(self) -> List[Room]:
        with self._lock:
            return list(self.rooms.values())

    def occupancy(self, name: object) -> int:
        """Current member count of a room; 0 for rooms never seen."""
        room = self.get_room(name)
        if room is None:
            return 0
        with room.lock:
            return 0 if room.closed else room.online

    def snapshot(self) -> RoomDirectory:
        """
        Point-in-time occupancy of every known room, in creation order.

        All room locks are held together while counting, so a participant
        moving between two rooms is never counted twice or not at all.
        """
        rooms = self.list_rooms()
        with locked_rooms(rooms):
            return {room.name: room.online for room in rooms if not room.closed}

    def release_if_empty(self, room: Room) -> bool:
        """
        Reclaim ``room`` if reaping is enabled and nobody is left in it.

        Caller must hold ``room.lock``.
        """
        if not self.reap_empty_rooms or room.members or room.closed:
            return False
        room.closed = True
        with self._lock:
            if self.rooms.get(room.name) is room:
                del self.rooms[room.name]
        logger.info("✗ Reclaimed empty room '%s'", room.name)
        return True

    def clear(self) -> None:
        with self._lock:
            rooms = list(self.rooms.values())
            self.rooms.clear()
        for room in rooms:
            with room.lock:
                room.closed = True
                room.members.clear()
