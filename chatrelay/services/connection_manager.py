# chatrelay/services/connection_manager.py

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

from chatrelay.models.models import ChatMessage, RoomDirectory, RoomInfo
from chatrelay.services import fanout
from chatrelay.services.normalization import normalize_avatar, normalize_name, normalize_text
from chatrelay.services.outbox import Outbox
from chatrelay.services.room_manager import Member, Room, RoomManager, locked_rooms
from chatrelay.services.session import Session

logger = logging.getLogger(__name__)

# ============================================================================
# CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    """
    Binds connections to participants and drives every room transition.

    Each connection is represented by a Session holding its display name,
    avatar and current room. Every inbound event is turned into one of the
    transitions below, which mutate the Session and the RoomManager and fan
    the resulting events out to the right outboxes.

    Lock order (outermost first):
        1. Session.lock           one participant at a time
        2. _directory_lock        serializes roomList broadcasts
        3. Room.lock              by normalized name when several are needed
        4. RoomManager/_sessions  leaf locks, nothing acquired under them

    Room critical sections only touch in-memory state and enqueue onto
    outboxes; the directory is always published after room locks are released.

    Data Structures:
        sessions: connection_id -> Session for every live connection
    """

    def __init__(
        self,
        room_manager: RoomManager,
        max_name_length: int = 24,
        default_name: str = "Guest",
        max_message_length: int = 500,
    ) -> None:
        self.room_manager = room_manager
        self.max_name_length = max_name_length
        self.default_name = default_name
        self.max_message_length = max_message_length

        self.sessions: Dict[str, Session] = {}
        self.message_counter = 0

        self._sessions_lock = threading.Lock()
        self._directory_lock = threading.Lock()
        self._stats_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, outbox: Outbox, connection_id: Optional[str] = None) -> Session:
        """
        Register a new connection. No events are sent until it joins a room.

        Returns:
            Session: the fresh binding, in the Connected(no room) state
        """
        session = Session(connection_id or uuid.uuid4().hex, outbox)
        with self._sessions_lock:
            self.sessions[session.connection_id] = session
            total = len(self.sessions)
        logger.info("✓ Connection %s opened. Total: %d", session.connection_id, total)
        return session

    def disconnect(self, connection_id: str) -> None:
        """
        Tear down a connection, leaving its room if it was in one.

        Safe to call any number of times for the same connection.
        """
        with self._sessions_lock:
            session = self.sessions.pop(connection_id, None)
            total = len(self.sessions)
        if session is None:
            return

        with session.lock:
            if session.disconnected:
                return
            was_joined = session.room is not None
            if was_joined:
                self._leave(session)
            session.disconnected = True

        logger.info("✗ Connection %s (%s) closed. Total: %d", connection_id, session.name, total)
        if was_joined:
            self._publish_directory()

    def get_session(self, connection_id: str) -> Optional[Session]:
        with self._sessions_lock:
            return self.sessions.get(connection_id)

    def close(self) -> None:
        """Drop every session and room. Used at application shutdown."""
        with self._sessions_lock:
            sessions = list(self.sessions.values())
            self.sessions.clear()
        for session in sessions:
            with session.lock:
                session.disconnected = True
                session.room = None
        self.room_manager.clear()
        logger.info("Connection manager closed (%d sessions dropped)", len(sessions))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def join(
        self,
        connection_id: str,
        name: Any = None,
        room: Any = None,
        avatar: Any = None,
    ) -> None:
        """
        Set the participant's name (and avatar, when given) and place it in ``room``.

        The joiner receives the room history, the room receives a ``joined``
        notice and every client receives the updated directory. Joining the
        room you are already in only refreshes your profile and re-sends history.
        A participant already in another room is moved out of it first.
        """
        session = self.get_session(connection_id)
        if session is None:
            return

        clean_name = normalize_name(name, self.max_name_length, self.default_name)
        target = self.room_manager.normalize(room)

        with session.lock:
            if session.disconnected:
                return
            session.name = clean_name
            if avatar is not None:
                session.avatar = normalize_avatar(avatar)

            if session.room == target:
                if self._rejoin(session):
                    return
                # Stale pointer to a room that no longer holds us
                session.room = None
            self._move(session, target)

        self._publish_directory()

    def switch_room(self, connection_id: str, room: Any) -> None:
        """Move to another room without reconnecting. Same room is a no-op."""
        session = self.get_session(connection_id)
        if session is None:
            return

        target = self.room_manager.normalize(room)
        with session.lock:
            if session.disconnected or session.room == target:
                return
            if session.name is None:
                session.name = self.default_name
            self._move(session, target)

        self._publish_directory()

    def set_profile(self, connection_id: str, avatar: Any) -> None:
        session = self.get_session(connection_id)
        if session is None:
            return

        with session.lock:
            if session.disconnected:
                return
            session.avatar = normalize_avatar(avatar)
            room = self.room_manager.get_room(session.room) if session.room else None
            if room is not None:
                with room.lock:
                    member = room.members.get(connection_id)
                    if member is not None:
                        member.avatar = session.avatar

        self._publish_directory()

    def send_message(self, connection_id: str, text: Any) -> Optional[ChatMessage]:
        """
        Append a message to the sender's room history and relay it to the room.

        Returns:
            The stored message, or None if it was dropped (empty text or the
            sender is not in a room).
        """
        session = self.get_session(connection_id)
        if session is None:
            return None

        body = normalize_text(text, self.max_message_length)
        if not body:
            logger.debug("Dropped empty message from %s", connection_id)
            return None

        with session.lock:
            room = self._current_room(session)
            if room is None:
                logger.debug("Dropped message from %s: not in a room", connection_id)
                return None
            with room.lock:
                if not room.has_member(connection_id):
                    return None
                message = ChatMessage(
                    name=session.name or self.default_name,
                    text=body,
                    time=fanout.now_ms(),
                    avatar=session.avatar,
                )
                room.append(message)
                delivered = fanout.send_message(room, message)

        with self._stats_lock:
            self.message_counter += 1
        logger.debug("📨 %s -> '%s' (%d recipients)", message.name, room.name, delivered)
        return message

    def set_typing(self, connection_id: str, is_typing: Any) -> None:
        session = self.get_session(connection_id)
        if session is None:
            return

        with session.lock:
            room = self._current_room(session)
            if room is None:
                return
            with room.lock:
                if room.has_member(connection_id):
                    fanout.send_typing(
                        room, connection_id, session.name or self.default_name, bool(is_typing)
                    )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def directory(self) -> RoomDirectory:
        return self.room_manager.snapshot()

    def room_info(self, room: Any) -> RoomInfo:
        name = self.room_manager.normalize(room)
        return RoomInfo(room=name, online=self.room_manager.occupancy(name))

    def connection_count(self) -> int:
        with self._sessions_lock:
            return len(self.sessions)

    def active_room_count(self) -> int:
        return sum(1 for online in self.directory().values() if online)

    def members_of(self, room: Any) -> List[str]:
        """Connection ids currently in ``room``, in join order."""
        found = self.room_manager.get_room(room)
        if found is None:
            return []
        with found.lock:
            return list(found.members)

    # ------------------------------------------------------------------
    # Internals (caller holds session.lock)
    # ------------------------------------------------------------------

    def _current_room(self, session: Session) -> Optional[Room]:
        if session.disconnected or session.room is None:
            return None
        return self.room_manager.get_room(session.room)

    def _member(self, session: Session) -> Member:
        return Member(
            connection_id=session.connection_id,
            name=session.name or self.default_name,
            avatar=session.avatar,
            outbox=session.outbox,
        )

    def _move(self, session: Session, target: str) -> None:
        old = self._current_room(session)
        name = session.name or self.default_name

        while True:
            new = self.room_manager.get_or_create(target)
            rooms = [new] if old is None else [old, new]
            with locked_rooms(rooms):
                if new.closed:
                    # Reclaimed between lookup and lock; fetch a live one
                    continue

                removed = old.remove_member(session.connection_id) if old is not None else None
                if removed is not None:
                    # Announce under the name the room knew us by
                    fanout.send_system(old, "left", removed.name)

                new.add_member(self._member(session))
                session.room = new.name
                fanout.send_history(session.outbox, new.history_snapshot())
                fanout.send_system(new, "joined", name)

                if old is not None:
                    self.room_manager.release_if_empty(old)
                break

        if old is not None:
            logger.info("⇄ %s switched '%s' -> '%s'", name, old.name, target)
        else:
            logger.info("→ %s joined '%s'", name, target)

    def _rejoin(self, session: Session) -> bool:
        room = self._current_room(session)
        if room is None:
            return False
        with room.lock:
            if room.closed or not room.has_member(session.connection_id):
                return False
            room.add_member(self._member(session))
            fanout.send_history(session.outbox, room.history_snapshot())
        return True

    def _leave(self, session: Session) -> None:
        room = self._current_room(session)
        session.room = None
        if room is None:
            return
        name = session.name or self.default_name
        with room.lock:
            if room.remove_member(session.connection_id) is None:
                return
            fanout.send_system(room, "left", name)
            self.room_manager.release_if_empty(room)
        logger.info("← %s left '%s'", name, room.name)

    def _publish_directory(self) -> None:
        with self._directory_lock:
            directory = self.room_manager.snapshot()
            with self._sessions_lock:
                outboxes = [session.outbox for session in self.sessions.values()]
            fanout.send_room_list(outboxes, directory)
