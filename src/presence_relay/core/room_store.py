"""
In-memory room store for the Presence Relay.

Rooms map participant ids to their last-known position and colour. A room
is created lazily on its first join and dropped the moment its last member
leaves, so memory tracks active usage only.

Every method is synchronous and never awaits. On a single event loop this
makes each join/move/leave atomic: one room only ever sees one writer at a
time, and events are applied in the order the relay processes them.
"""

import random
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from presence_relay.infrastructure.logging import setup_logging
from .types import COLOR_PALETTE, SPAWN_CENTER_X, SPAWN_CENTER_Y, SPAWN_SPREAD

logger = setup_logging(component_name="room_store")


@dataclass
class Participant:
    """A connection's membership and position record within one room."""

    id: str
    x: float
    y: float
    room_id: str
    color: str

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation, keyed the way clients expect."""
        data = asdict(self)
        data["roomId"] = data.pop("room_id")
        return data


@dataclass
class JoinResult:
    """Outcome of RoomStore.join."""

    is_rejoin: bool
    participant: Participant
    others: List[Participant] = field(default_factory=list)


@dataclass
class LeaveResult:
    """Outcome of RoomStore.leave."""

    removed: bool
    room_now_empty: bool


class RoomStore:
    """Owns every Participant record, grouped by room id."""

    def __init__(
        self,
        center_x: float = SPAWN_CENTER_X,
        center_y: float = SPAWN_CENTER_Y,
        spread: float = SPAWN_SPREAD,
        palette: Sequence[str] = COLOR_PALETTE,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not palette:
            raise ValueError("palette cannot be empty")

        self.center_x = center_x
        self.center_y = center_y
        self.spread = spread
        self.palette = tuple(palette)
        self._rng = rng or random.Random()

        # Map room_id -> participant_id -> Participant
        self._rooms: Dict[str, Dict[str, Participant]] = {}

    def join(self, room_id: str, connection_id: str) -> JoinResult:
        """
        Add a connection to a room, or re-sync it if it is already there.

        A rejoin keeps the stored position and colour untouched. A first
        join spawns near the world centre and takes the palette entry for
        the room's current size.

        Returns:
            JoinResult whose ``others`` never includes the joiner
        """
        room = self._rooms.setdefault(room_id, {})
        existing = room.get(connection_id)

        if existing is not None:
            participant = existing
            is_rejoin = True
        else:
            participant = Participant(
                id=connection_id,
                x=self._spawn_coordinate(self.center_x),
                y=self._spawn_coordinate(self.center_y),
                room_id=room_id,
                color=self.pick_color(len(room)),
            )
            room[connection_id] = participant
            is_rejoin = False

        others = [p for pid, p in room.items() if pid != connection_id]

        logger.debug(
            f"{connection_id} {'re-synced' if is_rejoin else 'joined'} "
            f"room '{room_id}' ({len(room)} participants)"
        )
        return JoinResult(is_rejoin=is_rejoin, participant=participant, others=others)

    def move(
        self, room_id: str, connection_id: str, x: float, y: float
    ) -> Optional[Participant]:
        """Overwrite a participant's position; None if room or member is gone."""
        room = self._rooms.get(room_id)
        if room is None:
            return None

        participant = room.get(connection_id)
        if participant is None:
            return None

        participant.x = x
        participant.y = y
        return participant

    def leave(self, room_id: str, connection_id: str) -> LeaveResult:
        """Remove a participant, deleting the room if it is now empty."""
        room = self._rooms.get(room_id)
        if room is None:
            return LeaveResult(removed=False, room_now_empty=False)

        removed = room.pop(connection_id, None) is not None
        room_now_empty = not room
        if room_now_empty:
            del self._rooms[room_id]
            logger.info(f"Room '{room_id}' is now empty, removed")

        return LeaveResult(removed=removed, room_now_empty=room_now_empty)

    def pick_color(self, index: int) -> str:
        """Palette entry for a member index; wraps once the palette runs out."""
        return self.palette[index % len(self.palette)]

    def _spawn_coordinate(self, center: float) -> float:
        return center + (self._rng.random() - 0.5) * self.spread

    def has_participant(self, room_id: str, connection_id: str) -> bool:
        """Check if a connection is already a member of this exact room."""
        return connection_id in self._rooms.get(room_id, {})

    def get_participant(
        self, room_id: str, connection_id: str
    ) -> Optional[Participant]:
        return self._rooms.get(room_id, {}).get(connection_id)

    def get_participants(self, room_id: str) -> List[Participant]:
        """Snapshot of a room's members; empty for unknown rooms."""
        return list(self._rooms.get(room_id, {}).values())

    def get_member_ids(self, room_id: str) -> List[str]:
        return list(self._rooms.get(room_id, {}))

    def has_room(self, room_id: str) -> bool:
        return room_id in self._rooms

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def participant_count(self) -> int:
        return sum(len(room) for room in self._rooms.values())

    def get_stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        return {
            "rooms": self.room_count,
            "participants": self.participant_count,
            "room_sizes": {room_id: len(room) for room_id, room in self._rooms.items()},
        }
