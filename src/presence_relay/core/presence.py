"""
Presence synchronizer for the Presence Relay.

Decides who receives which notification when connections join, move,
leave or drop. Delivery is fire-and-forget: a lost notification heals on
the next join or move, so nothing here acknowledges or retries.
"""

from typing import Optional

from presence_relay.infrastructure.logging import setup_logging
from .connection_registry import ConnectionRegistry
from .room_store import JoinResult, LeaveResult, Participant, RoomStore
from .types import (
    EVT_PLAYER_JOINED,
    EVT_PLAYER_LEFT,
    EVT_PLAYER_MOVED,
    EVT_ROOM_STATE,
    EVT_SELF_PLAYER,
)

logger = setup_logging(component_name="presence")


class PresenceSynchronizer:
    """Fans room changes out to the right subset of connections."""

    def __init__(self, store: RoomStore, connections: ConnectionRegistry) -> None:
        self.store = store
        self.connections = connections
        self.connections.add_disconnect_listener(self.on_disconnect)

    def handle_join(self, connection_id: str, room_id: str) -> Optional[JoinResult]:
        """
        Join a room and synchronise everyone concerned.

        The joiner gets a snapshot of the other members followed by its own
        record. Other members hear about a first join only; a rejoin is
        silent so observers never see the same participant twice.
        """
        if not self.connections.is_registered(connection_id):
            return None

        current_room = self.connections.get_room(connection_id)
        if current_room is not None and current_room != room_id:
            self.handle_leave(connection_id)

        result = self.store.join(room_id, connection_id)
        self.connections.set_room(connection_id, room_id)

        self.connections.send(
            [connection_id], EVT_ROOM_STATE, [p.to_dict() for p in result.others]
        )
        self.connections.send(
            [connection_id], EVT_SELF_PLAYER, result.participant.to_dict()
        )

        if not result.is_rejoin:
            self.connections.send(
                [p.id for p in result.others],
                EVT_PLAYER_JOINED,
                result.participant.to_dict(),
            )

        logger.info(
            f"[R] {connection_id} {'re-synced' if result.is_rejoin else 'joined'} "
            f"room '{room_id}' ({len(result.others) + 1} players)"
        )
        return result

    def handle_move(
        self, connection_id: str, x: float, y: float
    ) -> Optional[Participant]:
        """Store a new position and tell every other member; the mover gets no echo."""
        room_id = self.connections.get_room(connection_id)
        if room_id is None:
            return None

        participant = self.store.move(room_id, connection_id, x, y)
        if participant is None:
            return None

        others = [
            pid for pid in self.store.get_member_ids(room_id) if pid != connection_id
        ]
        self.connections.send(
            others, EVT_PLAYER_MOVED, {"id": connection_id, "x": x, "y": y}
        )
        return participant

    def handle_leave(self, connection_id: str) -> Optional[LeaveResult]:
        """Explicitly leave the current room without disconnecting."""
        room_id = self.connections.get_room(connection_id)
        if room_id is None:
            return None

        self.connections.set_room(connection_id, None)
        return self._depart(connection_id, room_id)

    def on_disconnect(self, connection_id: str, room_id: Optional[str]) -> None:
        """Disconnect listener: drop the connection from the room it was in."""
        if room_id is not None:
            self._depart(connection_id, room_id)

    def _depart(self, connection_id: str, room_id: str) -> LeaveResult:
        result = self.store.leave(room_id, connection_id)

        remaining = self.store.get_member_ids(room_id)
        if remaining:
            self.connections.send(remaining, EVT_PLAYER_LEFT, connection_id)

        logger.info(f"[R] {connection_id} left room '{room_id}'")
        return result
