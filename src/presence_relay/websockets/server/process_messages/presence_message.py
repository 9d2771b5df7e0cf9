"""
Presence message handler for the WebSocket relay server.

This module validates join/move/leave frames and hands them to the
PresenceSynchronizer.
"""

import logging
import math
from typing import Any, Tuple

from presence_relay.core import PresenceSynchronizer
from presence_relay.core.types import EVT_JOIN_ROOM, EVT_LEAVE_ROOM, EVT_PLAYER_MOVE
from presence_relay.infrastructure.exceptions import ProtocolError

PRESENCE_EVENTS = frozenset({EVT_JOIN_ROOM, EVT_LEAVE_ROOM, EVT_PLAYER_MOVE})


def parse_room_id(data: Any) -> str:
    """Room ids arrive as a bare string payload."""
    if not isinstance(data, str) or not data.strip():
        raise ProtocolError("join:room expects a non-empty room id")
    return data.strip()


def parse_position(data: Any) -> Tuple[float, float]:
    """Extract a finite ``(x, y)`` pair from a move payload."""
    if not isinstance(data, dict):
        raise ProtocolError("player:move expects an object with x and y")

    coords = []
    for key in ("x", "y"):
        value = data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ProtocolError(f"player:move field {key!r} must be a number")
        if not math.isfinite(value):
            raise ProtocolError(f"player:move field {key!r} must be finite")
        coords.append(float(value))

    return coords[0], coords[1]


class PresenceMessageHandler:
    """Handles room membership and movement frames."""

    def __init__(self, presence: PresenceSynchronizer, logger: logging.Logger) -> None:
        self.presence = presence
        self.logger = logger

    def handles(self, event: str) -> bool:
        return event in PRESENCE_EVENTS

    async def process_presence_message(
        self, connection_id: str, event: str, data: Any
    ) -> None:
        """
        Apply one presence frame.

        Raises:
            ProtocolError: If the payload is malformed
        """
        if event == EVT_JOIN_ROOM:
            self.presence.handle_join(connection_id, parse_room_id(data))
        elif event == EVT_PLAYER_MOVE:
            x, y = parse_position(data)
            self.presence.handle_move(connection_id, x, y)
        elif event == EVT_LEAVE_ROOM:
            self.presence.handle_leave(connection_id)
        else:
            self.logger.warning(f"Unhandled presence event: {event}")
