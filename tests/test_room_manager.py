"""Tests for Room and RoomManager."""

from chatrelay.models.models import ChatMessage
from chatrelay.services.room_manager import Member, Room, RoomManager, locked_rooms

from tests.conftest import RecordingOutbox


def _member(connection_id: str) -> Member:
    return Member(connection_id=connection_id, name=connection_id, avatar=None, outbox=RecordingOutbox())


class TestRoom:
    def test_history_evicts_oldest_first(self) -> None:
        room = Room("general", history_limit=100)
        for i in range(101):
            room.append(ChatMessage(name="a", text=str(i), time=i))

        history = room.history_snapshot()
        assert len(history) == 100
        assert history[0].text == "1"
        assert history[-1].text == "100"

    def test_membership_is_a_set(self) -> None:
        room = Room("general")
        room.add_member(_member("a"))
        room.add_member(_member("a"))
        assert room.online == 1

    def test_remove_unknown_member_is_noop(self) -> None:
        room = Room("general")
        assert room.remove_member("ghost") is None
        assert room.online == 0


class TestRoomManager:
    def test_get_or_create_is_idempotent_across_spellings(self) -> None:
        manager = RoomManager()
        first = manager.get_or_create("General")
        second = manager.get_or_create("  general ")
        assert first is second
        assert first.name == "general"

    def test_empty_name_maps_to_default_room(self) -> None:
        manager = RoomManager()
        assert manager.get_or_create("").name == "general"
        assert manager.get_or_create(None).name == "general"

    def test_snapshot_keeps_creation_order(self) -> None:
        manager = RoomManager()
        for name in ("zeta", "alpha", "mid"):
            manager.get_or_create(name)
        assert list(manager.snapshot()) == ["zeta", "alpha", "mid"]

    def test_snapshot_counts_members(self) -> None:
        manager = RoomManager()
        room = manager.get_or_create("dev")
        with room.lock:
            room.add_member(_member("a"))
            room.add_member(_member("b"))
        assert manager.snapshot() == {"dev": 2}

    def test_occupancy_of_unknown_room_is_zero(self) -> None:
        manager = RoomManager()
        assert manager.occupancy("nowhere") == 0
        assert manager.get_room("nowhere") is None

    def test_empty_rooms_stay_by_default(self) -> None:
        manager = RoomManager()
        room = manager.get_or_create("dev")
        with room.lock:
            assert manager.release_if_empty(room) is False
        assert manager.snapshot() == {"dev": 0}

    def test_empty_rooms_reaped_when_enabled(self) -> None:
        manager = RoomManager(reap_empty_rooms=True)
        room = manager.get_or_create("dev")
        with room.lock:
            assert manager.release_if_empty(room) is True
        assert room.closed
        assert manager.snapshot() == {}
        assert manager.get_or_create("dev") is not room

    def test_occupied_rooms_are_never_reaped(self) -> None:
        manager = RoomManager(reap_empty_rooms=True)
        room = manager.get_or_create("dev")
        with room.lock:
            room.add_member(_member("a"))
            assert manager.release_if_empty(room) is False
        assert manager.snapshot() == {"dev": 1}

    def test_clear_closes_every_room(self) -> None:
        manager = RoomManager()
        room = manager.get_or_create("dev")
        manager.clear()
        assert room.closed
        assert manager.list_rooms() == []


def test_locked_rooms_acquires_and_releases_each_lock_once() -> None:
    a, b = Room("a"), Room("b")
    with locked_rooms([b, a, b]):
        assert a.lock.locked()
        assert b.lock.locked()
    assert not a.lock.locked()
    assert not b.lock.locked()
