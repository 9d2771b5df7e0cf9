"""
WebSocket client for the Presence Relay.

This module provides the client used by endpoints to join rooms, report
movement and exchange call signaling through the relay.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import websockets.exceptions
from websockets.asyncio.client import ClientConnection, connect

from presence_relay.core.protocol import decode_event, encode_event
from presence_relay.core.types import (
    EVT_CONNECTION_READY,
    EVT_JOIN_ROOM,
    EVT_LEAVE_ROOM,
    EVT_PLAYER_MOVE,
    KEY_TARGET,
)
from presence_relay.infrastructure.exceptions import ProtocolError, WebSocketError
from .dispatcher import EventDispatcher, EventHandler, Subscription

# Pseudo-event dispatched locally when the relay connection drops
EVT_DISCONNECTED = "disconnect"


class SignalingClient:
    """
    Relay client for presence and call signaling.

    The relay assigns the connection id; ``connect`` returns once the
    relay's ``connection:ready`` frame has delivered it.
    """

    def __init__(
        self,
        server_url: str,
        logger: logging.Logger,
        reconnect: bool = True,
    ) -> None:
        """
        Initialize the WebSocket client.

        Args:
            server_url: WebSocket server URL
            logger: Logger instance
            reconnect: Reconnect with backoff after the connection drops
        """
        if not server_url:
            raise ValueError("server_url cannot be empty")
        if not server_url.startswith(("ws://", "wss://")):
            raise ValueError("server_url must start with 'ws://' or 'wss://'")

        self.server_url: str = server_url
        self.logger: logging.Logger = logger
        self.dispatcher = EventDispatcher(logger)

        self.websocket: Optional[ClientConnection] = None
        self.connection_id: Optional[str] = None
        self.is_connected: bool = False
        self.room_id: Optional[str] = None

        self._ready: Optional[asyncio.Future[str]] = None
        self._connection_task: Optional[asyncio.Task[None]] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None
        self._should_reconnect: bool = reconnect

    def on(self, event: str, handler: EventHandler) -> Subscription:
        """Subscribe ``handler`` to an event coming from the relay."""
        return self.dispatcher.subscribe(event, handler)

    async def connect(
        self, max_retries: int = 5, retry_delay: float = 1.0, timeout: float = 10.0
    ) -> bool:
        """
        Connect to the relay with retry logic.

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Initial delay between retries (exponential backoff)
            timeout: Seconds to wait for the relay to assign an id

        Returns:
            True if connection successful, False otherwise
        """
        for attempt in range(max_retries):
            try:
                self.logger.info(
                    f"Connecting to {self.server_url} (attempt {attempt + 1}/{max_retries})"
                )
                self.websocket = await connect(self.server_url, compression=None)

                self._ready = asyncio.get_running_loop().create_future()
                self._connection_task = asyncio.create_task(self._process_messages())

                self.connection_id = await asyncio.wait_for(self._ready, timeout)
                self.is_connected = True
                self.logger.info(f"[{self.connection_id}] Client ready")

                if self.room_id:
                    await self.join_room(self.room_id)
                return True

            except (
                OSError,
                asyncio.TimeoutError,
                WebSocketError,
                websockets.exceptions.WebSocketException,
            ) as e:
                self.logger.error(
                    f"Error connecting (attempt {attempt + 1}): {e}", exc_info=True
                )
                await self._close_socket()
                if attempt < max_retries - 1:
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2

        return False

    async def _process_messages(self) -> None:
        """Process incoming frames from the relay."""
        try:
            async for message in self.websocket:
                try:
                    event, data = decode_event(message)
                except ProtocolError as e:
                    self.logger.warning(f"Ignoring malformed frame: {e}")
                    continue

                if event == EVT_CONNECTION_READY:
                    self._handle_ready(data)
                    continue

                await self.dispatcher.dispatch(event, data)
        except websockets.exceptions.ConnectionClosed:
            self.logger.warning(f"[{self.connection_id}] Connection closed by relay")
        finally:
            if self._ready and not self._ready.done():
                self._ready.set_exception(WebSocketError("Closed before ready"))

            was_connected = self.is_connected
            self.is_connected = False
            if was_connected:
                await self.dispatcher.dispatch(EVT_DISCONNECTED, None)

            if self._should_reconnect and was_connected and not self._reconnect_task:
                self._reconnect_task = asyncio.create_task(self._handle_reconnection())

    def _handle_ready(self, data: Any) -> None:
        connection_id = data.get("id") if isinstance(data, dict) else None
        if self._ready and not self._ready.done():
            if connection_id:
                self._ready.set_result(connection_id)
            else:
                self._ready.set_exception(WebSocketError("Relay sent no connection id"))

    async def send_event(self, event: str, data: Any = None) -> bool:
        """Send one event to the relay; False if not connected."""
        if not self.is_connected or not self.websocket:
            self.logger.warning(f"Cannot send {event} - not connected")
            return False

        try:
            await self.websocket.send(encode_event(event, data))
            return True
        except websockets.exceptions.ConnectionClosed:
            self.logger.warning(f"Connection closed while sending {event}")
            self.is_connected = False
            return False

    async def send_to(self, event: str, target_id: str, **fields: Any) -> bool:
        """Send a signaling event addressed to another connection."""
        return await self.send_event(event, {KEY_TARGET: target_id, **fields})

    async def join_room(self, room_id: str) -> bool:
        self.room_id = room_id
        return await self.send_event(EVT_JOIN_ROOM, room_id)

    async def leave_room(self) -> bool:
        self.room_id = None
        return await self.send_event(EVT_LEAVE_ROOM)

    async def move(self, x: float, y: float) -> bool:
        return await self.send_event(EVT_PLAYER_MOVE, {"x": x, "y": y})

    async def _handle_reconnection(self) -> None:
        """Handle automatic reconnection with exponential backoff."""
        base_delay = 1.0
        max_delay = 60.0
        retry_count = 0

        try:
            while self._should_reconnect:
                retry_count += 1
                delay = min(base_delay * (2 ** (retry_count - 1)), max_delay)
                self.logger.info(f"Attempting reconnection #{retry_count} in {delay:.1f}s...")
                await asyncio.sleep(delay)

                if await self.connect(max_retries=1):
                    self.logger.info(f"Reconnected after {retry_count} attempts")
                    return
        finally:
            self._reconnect_task = None

    async def _close_socket(self) -> None:
        if self.websocket:
            try:
                await self.websocket.close()
            except websockets.exceptions.WebSocketException as e:
                self.logger.error(f"Error closing socket: {e}")
            self.websocket = None

    async def disconnect(self) -> None:
        """Disconnect from the relay and stop reconnecting."""
        self._should_reconnect = False

        if self._reconnect_task:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None

        await self._close_socket()

        if self._connection_task:
            try:
                await self._connection_task
            except asyncio.CancelledError:
                pass
            self._connection_task = None

        self.is_connected = False
        self.logger.info(f"[{self.connection_id}] Disconnected from relay")

    def get_status(self) -> Dict[str, Any]:
        """Get client status information."""
        return {
            "connection_id": self.connection_id,
            "is_connected": self.is_connected,
            "room_id": self.room_id,
            "server_url": self.server_url,
        }
