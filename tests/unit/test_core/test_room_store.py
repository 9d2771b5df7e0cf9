"""
Unit tests for the RoomStore.
"""

import random

import pytest

from presence_relay.core import RoomStore
from presence_relay.core.types import COLOR_PALETTE, SPAWN_CENTER_X, SPAWN_CENTER_Y


class TestJoin:
    """Test cases for RoomStore.join."""

    @pytest.mark.unit
    def test_first_join_creates_room(self, store):
        result = store.join("plaza", "a")

        assert result.is_rejoin is False
        assert result.others == []
        assert result.participant.id == "a"
        assert result.participant.room_id == "plaza"
        assert store.has_room("plaza")
        assert store.participant_count == 1

    @pytest.mark.unit
    def test_spawn_is_near_world_center(self, store):
        for index in range(50):
            p = store.join("plaza", f"p{index}").participant
            assert SPAWN_CENTER_X - 80 <= p.x < SPAWN_CENTER_X + 80
            assert SPAWN_CENTER_Y - 80 <= p.y < SPAWN_CENTER_Y + 80

    @pytest.mark.unit
    def test_spawn_uses_injected_random_source(self):
        first = RoomStore(rng=random.Random(7)).join("r", "a").participant
        second = RoomStore(rng=random.Random(7)).join("r", "a").participant

        assert (first.x, first.y) == (second.x, second.y)

    @pytest.mark.unit
    def test_zero_spread_spawns_exactly_at_center(self):
        store = RoomStore(center_x=10.0, center_y=20.0, spread=0.0)
        p = store.join("r", "a").participant

        assert (p.x, p.y) == (10.0, 20.0)

    @pytest.mark.unit
    def test_others_excludes_joiner(self, store):
        store.join("plaza", "a")
        store.join("plaza", "b")
        result = store.join("plaza", "c")

        assert sorted(p.id for p in result.others) == ["a", "b"]

    @pytest.mark.unit
    def test_rejoin_preserves_position_and_color(self, store):
        original = store.join("plaza", "a").participant
        store.join("plaza", "b")
        store.move("plaza", "a", 42.0, 17.5)

        result = store.join("plaza", "a")

        assert result.is_rejoin is True
        assert (result.participant.x, result.participant.y) == (42.0, 17.5)
        assert result.participant.color == original.color
        assert [p.id for p in result.others] == ["b"]
        assert store.participant_count == 2

    @pytest.mark.unit
    def test_colors_follow_palette_by_member_count(self, store):
        colors = [
            store.join("plaza", f"p{index}").participant.color
            for index in range(len(COLOR_PALETTE) + 2)
        ]

        assert colors[: len(COLOR_PALETTE)] == list(COLOR_PALETTE)
        # Palette wraps once the room outgrows it
        assert colors[len(COLOR_PALETTE)] == COLOR_PALETTE[0]
        assert colors[len(COLOR_PALETTE) + 1] == COLOR_PALETTE[1]

    @pytest.mark.unit
    def test_rooms_are_independent(self, store):
        store.join("plaza", "a")
        result = store.join("market", "b")

        assert result.others == []
        assert result.participant.color == COLOR_PALETTE[0]
        assert store.room_count == 2

    @pytest.mark.unit
    def test_empty_palette_is_rejected(self):
        with pytest.raises(ValueError):
            RoomStore(palette=())


class TestMove:
    """Test cases for RoomStore.move."""

    @pytest.mark.unit
    def test_move_overwrites_position(self, store):
        store.join("plaza", "a")

        moved = store.move("plaza", "a", 10.0, 20.0)

        assert (moved.x, moved.y) == (10.0, 20.0)
        assert store.get_participant("plaza", "a") is moved

    @pytest.mark.unit
    def test_last_write_wins(self, store):
        store.join("plaza", "a")
        for x, y in [(1.0, 1.0), (5.0, -3.0), (2.5, 9.0)]:
            store.move("plaza", "a", x, y)

        p = store.get_participant("plaza", "a")
        assert (p.x, p.y) == (2.5, 9.0)

    @pytest.mark.unit
    def test_move_in_unknown_room_is_dropped(self, store):
        assert store.move("nowhere", "a", 1.0, 2.0) is None
        assert not store.has_room("nowhere")

    @pytest.mark.unit
    def test_move_for_unknown_participant_is_dropped(self, store):
        store.join("plaza", "a")

        assert store.move("plaza", "ghost", 1.0, 2.0) is None
        assert store.get_member_ids("plaza") == ["a"]


class TestLeave:
    """Test cases for RoomStore.leave."""

    @pytest.mark.unit
    def test_leave_removes_participant(self, store):
        store.join("plaza", "a")
        store.join("plaza", "b")

        result = store.leave("plaza", "a")

        assert result.removed is True
        assert result.room_now_empty is False
        assert store.get_member_ids("plaza") == ["b"]

    @pytest.mark.unit
    def test_last_leave_deletes_room(self, store):
        store.join("plaza", "a")

        result = store.leave("plaza", "a")

        assert result.removed is True
        assert result.room_now_empty is True
        assert not store.has_room("plaza")
        assert store.room_count == 0

    @pytest.mark.unit
    def test_leave_unknown_room(self, store):
        result = store.leave("nowhere", "a")

        assert result.removed is False
        assert result.room_now_empty is False

    @pytest.mark.unit
    def test_leave_unknown_participant_keeps_room(self, store):
        store.join("plaza", "a")

        result = store.leave("plaza", "ghost")

        assert result.removed is False
        assert store.has_room("plaza")

    @pytest.mark.unit
    def test_member_count_tracks_join_and_leave_sequence(self, store):
        rng = random.Random(99)
        members = set()
        for _ in range(300):
            cid = f"c{rng.randrange(12)}"
            if rng.random() < 0.6:
                store.join("plaza", cid)
                members.add(cid)
            else:
                store.leave("plaza", cid)
                members.discard(cid)

            assert set(store.get_member_ids("plaza")) == members
            assert store.has_room("plaza") == bool(members)


class TestParticipant:
    """Test cases for the Participant wire form."""

    @pytest.mark.unit
    def test_to_dict_uses_client_keys(self, store):
        p = store.join("plaza", "a").participant

        data = p.to_dict()

        assert data == {"id": "a", "x": p.x, "y": p.y, "roomId": "plaza", "color": p.color}

    @pytest.mark.unit
    def test_get_stats(self, store):
        store.join("plaza", "a")
        store.join("plaza", "b")
        store.join("market", "c")

        stats = store.get_stats()

        assert stats["rooms"] == 2
        assert stats["participants"] == 3
        assert stats["room_sizes"] == {"plaza": 2, "market": 1}
