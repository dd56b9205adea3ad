"""Tests for the delivery rules."""

from chatrelay.models.models import ChatMessage
from chatrelay.services import fanout
from chatrelay.services.room_manager import Member, Room

from tests.conftest import RecordingOutbox


def _room_with(*connection_ids: str) -> tuple[Room, dict[str, RecordingOutbox]]:
    room = Room("general")
    outboxes = {}
    for connection_id in connection_ids:
        outboxes[connection_id] = RecordingOutbox()
        room.add_member(
            Member(connection_id=connection_id, name=connection_id, avatar=None, outbox=outboxes[connection_id])
        )
    return room, outboxes


def test_each_recipient_gets_its_own_message_copy() -> None:
    room, outboxes = _room_with("a", "b")
    fanout.send_message(room, ChatMessage(name="a", text="hi", time=1))

    first = outboxes["a"].last("message")
    second = outboxes["b"].last("message")
    assert first == second
    assert first is not second

    first["text"] = "tampered"
    assert outboxes["b"].last("message")["text"] == "hi"


def test_system_payloads_are_not_shared() -> None:
    room, outboxes = _room_with("a", "b")
    fanout.send_system(room, "joined", "a")
    assert outboxes["a"].last("system") is not outboxes["b"].last("system")


def test_typing_skips_sender_and_uses_wire_names() -> None:
    room, outboxes = _room_with("a", "b", "c")
    delivered = fanout.send_typing(room, "a", "a", True)

    assert delivered == 2
    assert outboxes["a"].events("typing") == []
    assert outboxes["b"].last("typing") == {"name": "a", "isTyping": True}
    assert outboxes["b"].last("typing") is not outboxes["c"].last("typing")
