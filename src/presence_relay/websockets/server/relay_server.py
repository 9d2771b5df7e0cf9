"""
WebSocket relay server for presence and call signaling.

Each connection is registered for exactly the lifetime of its handler.
Frames are decoded to events and routed either to the presence handler
(rooms and movement) or to the signaling handler (peer-to-peer calls).
"""

import asyncio
from typing import Any, Dict, Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from presence_relay.config import RelayConfig
from presence_relay.core import (
    ConnectionRegistry,
    PresenceSynchronizer,
    RoomStore,
    SignalingRelay,
)
from presence_relay.core.protocol import decode_event
from presence_relay.core.types import EVT_CONNECTION_READY
from presence_relay.infrastructure import setup_logging
from presence_relay.infrastructure.exceptions import ProtocolError
from .process_messages import (
    ConnectionUtils,
    PresenceMessageHandler,
    SignalingMessageHandler,
)

logger = setup_logging(
    component_name="relay_server",
    log_file="logs/relay_server.log",
)


class PresenceRelayServer:
    """WebSocket server hosting the room store and the signaling relay."""

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        store: Optional[RoomStore] = None,
    ) -> None:
        """Initialize the relay server."""
        self.config = config or RelayConfig()
        self.server: Optional[Server] = None

        self.connections = ConnectionRegistry()
        self.store = store or RoomStore(
            center_x=self.config.spawn_center_x,
            center_y=self.config.spawn_center_y,
            spread=self.config.spawn_spread,
        )
        self.presence = PresenceSynchronizer(self.store, self.connections)
        self.signaling = SignalingRelay(self.connections)

        self._connection_semaphore = asyncio.Semaphore(self.config.max_connections)
        self._health_task: Optional[asyncio.Task] = None

        # Initialize message handlers
        self.presence_handler = PresenceMessageHandler(self.presence, logger)
        self.signaling_handler = SignalingMessageHandler(self.signaling, logger)

    async def start(self) -> bool:
        """Start the relay server."""
        try:
            self.server = await serve(
                self._handle_connection,
                self.config.host,
                self.config.port,
                ping_interval=None,  # Manual ping handling
                max_size=self.config.max_message_size,
                compression=None,  # No compression for low latency
            )
        except OSError as e:
            logger.error(f"Failed to start relay server: {e}", exc_info=True)
            return False

        logger.info(f"Presence relay started on {self.config.host}:{self.port}")
        if self.config.ping_interval > 0:
            self._health_task = asyncio.create_task(
                ConnectionUtils.health_monitor(
                    self.connections, self.config.ping_interval, logger
                )
            )
        return True

    async def stop(self) -> None:
        """Stop the relay server."""
        if self._health_task:
            self._health_task.cancel()
            try:
                await self._health_task
            except asyncio.CancelledError:
                pass
            self._health_task = None

        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
            logger.info("Presence relay stopped")

    @property
    def port(self) -> Optional[int]:
        """Port actually bound, which differs from the config when it is 0."""
        if not self.server or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[1]

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        """Handle one WebSocket connection from open to close."""
        client_address = websocket.remote_address

        async with self._connection_semaphore:
            with self.connections.register(websocket) as connection_id:
                logger.info(f"New connection {connection_id} from {client_address}")
                self.connections.send(
                    [connection_id], EVT_CONNECTION_READY, {"id": connection_id}
                )
                try:
                    async for message in websocket:
                        await self._dispatch(connection_id, message)
                except ConnectionClosed:
                    logger.info(f"Connection closed: {connection_id}")
                except Exception as e:
                    logger.error(
                        f"Error handling connection {connection_id}: {e}",
                        exc_info=True,
                    )

    async def _dispatch(self, connection_id: str, message: Any) -> None:
        """Decode one frame and route it to the matching handler."""
        try:
            event, data = decode_event(message)

            if self.presence_handler.handles(event):
                await self.presence_handler.process_presence_message(
                    connection_id, event, data
                )
            elif self.signaling_handler.handles(event):
                await self.signaling_handler.process_signaling_message(
                    connection_id, event, data
                )
            else:
                raise ProtocolError(f"Unknown event: {event}")

        except ProtocolError as e:
            logger.warning(f"Rejected frame from {connection_id}: {e}")
            ConnectionUtils.send_error(self.connections, connection_id, str(e))

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics."""
        return {
            "server_running": self.server is not None,
            "registry_stats": self.connections.get_stats(),
            "room_stats": self.store.get_stats(),
            "signaling_stats": self.signaling.get_stats(),
        }
