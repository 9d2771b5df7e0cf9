"""
Connection registry for the Presence Relay.

This module maps live WebSocket connections to stable identifiers and
remembers which room each connection currently belongs to. It is the
lifecycle anchor for all other relay state: disconnecting a connection
fans out to every registered disconnect listener exactly once.
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from websockets.asyncio.server import ServerConnection, broadcast

from presence_relay.infrastructure.logging import setup_logging
from .protocol import encode_event

logger = setup_logging(component_name="connection_registry")

# Called with (connection_id, room_id or None) after a connection is removed
DisconnectListener = Callable[[str, Optional[str]], None]


class ConnectionRegistry:
    """Registry of live connections with O(1) lookups."""

    def __init__(self) -> None:
        # Map connection_id -> WebSocket connection
        self.clients: Dict[str, ServerConnection] = {}

        # Map connection_id -> room_id for connections that joined a room
        self.rooms: Dict[str, str] = {}

        self._disconnect_listeners: List[DisconnectListener] = []

    def add_disconnect_listener(self, listener: DisconnectListener) -> None:
        """Register a callback run once for every disconnected connection."""
        self._disconnect_listeners.append(listener)

    def on_connect(self, websocket: ServerConnection) -> str:
        """Register a connection and return its identifier."""
        connection_id = str(websocket.id)
        self.clients[connection_id] = websocket
        logger.info(f"[+] Connection registered: {connection_id}")
        return connection_id

    def on_disconnect(self, connection_id: str) -> None:
        """
        Unregister a connection and cascade cleanup to listeners.

        Idempotent: an identifier that is already gone is accepted and
        ignored, so listeners never see the same disconnect twice.
        """
        if self.clients.pop(connection_id, None) is None:
            return

        room_id = self.rooms.pop(connection_id, None)
        logger.info(f"[-] Connection unregistered: {connection_id}")

        for listener in self._disconnect_listeners:
            try:
                listener(connection_id, room_id)
            except Exception as e:
                logger.error(
                    f"Disconnect listener failed for {connection_id}: {e}",
                    exc_info=True,
                )

    @contextmanager
    def register(self, websocket: ServerConnection) -> Iterator[str]:
        """
        Scope a connection's registration to a ``with`` block.

        The registration is torn down on exit however the block ends.
        """
        connection_id = self.on_connect(websocket)
        try:
            yield connection_id
        finally:
            self.on_disconnect(connection_id)

    def set_room(self, connection_id: str, room_id: Optional[str]) -> None:
        """Record (or clear) the room a connection currently belongs to."""
        if connection_id not in self.clients:
            return
        if room_id is None:
            self.rooms.pop(connection_id, None)
        else:
            self.rooms[connection_id] = room_id

    def get_room(self, connection_id: str) -> Optional[str]:
        return self.rooms.get(connection_id)

    def get(self, connection_id: str) -> Optional[ServerConnection]:
        """Get WebSocket for a connection - O(1) lookup."""
        return self.clients.get(connection_id)

    def is_registered(self, connection_id: str) -> bool:
        """Check if connection is registered."""
        return connection_id in self.clients

    def send(self, connection_ids: Iterable[str], event: str, data: Any = None) -> int:
        """
        Fire-and-forget an event to every live connection in ``connection_ids``.

        Unknown identifiers are skipped. ``broadcast`` writes without waiting
        for the peer, so a slow connection never stalls the caller.

        Returns:
            Number of connections the frame was handed to
        """
        targets = [
            self.clients[cid] for cid in connection_ids if cid in self.clients
        ]
        if not targets:
            return 0

        broadcast(targets, encode_event(event, data))
        return len(targets)

    def get_stats(self) -> Dict[str, int]:
        """Get registry statistics."""
        return {
            "total_connections": len(self.clients),
            "in_room": len(self.rooms),
        }
