# chatrelay/services/fanout.py
"""
Delivery rules: who receives which outbound event.

    history   -> the joining/switching connection only
    message   -> every member of the room, sender included
    system    -> every member of the affected room, subject included
    typing    -> every member of the room except the typist
    roomList  -> every connected client, whatever room they are in

Room-scoped helpers must be called with the room's lock held so that every
member observes the room's events in the same order.
"""

from __future__ import annotations

import time
from typing import Iterable, List, Optional

from pydantic import BaseModel

from chatrelay.models.models import ChatMessage, RoomDirectory, SystemEvent, TypingEvent
from chatrelay.services.outbox import Outbox
from chatrelay.services.room_manager import Room

HISTORY = "history"
MESSAGE = "message"
SYSTEM = "system"
TYPING = "typing"
ROOM_LIST = "roomList"


def now_ms() -> int:
    return int(time.time() * 1000)


def _to_room(
    room: Room,
    event: str,
    payload: BaseModel,
    exclude: Optional[str] = None,
    by_alias: bool = False,
) -> int:
    delivered = 0
    for connection_id, member in room.members.items():
        if connection_id == exclude:
            continue
        # Each recipient gets its own copy of the payload
        member.outbox.deliver(event, payload.model_dump(by_alias=by_alias))
        delivered += 1
    return delivered


def send_history(outbox: Outbox, messages: List[ChatMessage]) -> None:
    outbox.deliver(HISTORY, [message.model_dump() for message in messages])


def send_message(room: Room, message: ChatMessage) -> int:
    return _to_room(room, MESSAGE, message)


def send_system(room: Room, kind: str, name: str) -> int:
    """Announce ``name`` joining or leaving, with the room's current size."""
    text = f"{name} {kind}"
    event = SystemEvent(type=kind, text=text, online=room.online, time=now_ms())
    return _to_room(room, SYSTEM, event)


def send_typing(room: Room, sender_id: str, name: str, is_typing: bool) -> int:
    event = TypingEvent(name=name, isTyping=is_typing)
    return _to_room(room, TYPING, event, exclude=sender_id, by_alias=True)


def send_room_list(outboxes: Iterable[Outbox], directory: RoomDirectory) -> int:
    delivered = 0
    for outbox in outboxes:
        # Each client gets its own copy of the mapping
        outbox.deliver(ROOM_LIST, dict(directory))
        delivered += 1
    return delivered
