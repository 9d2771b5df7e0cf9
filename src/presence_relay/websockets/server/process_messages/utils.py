"""
Utility functions for connection management.

This module provides helpers shared by the relay server's message handlers.
"""

import asyncio
import logging

from websockets.exceptions import ConnectionClosed

from presence_relay.core import ConnectionRegistry
from presence_relay.core.types import EVT_ERROR


class ConnectionUtils:
    """Utility functions for connection management."""

    @staticmethod
    def send_error(
        connections: ConnectionRegistry, connection_id: str, message: str
    ) -> None:
        """Report a rejected frame back to its sender."""
        connections.send([connection_id], EVT_ERROR, {"message": message})

    @staticmethod
    async def health_monitor(
        connections: ConnectionRegistry,
        ping_interval: int,
        logger: logging.Logger,
    ) -> None:
        """Ping every live connection to keep idle ones open."""
        while True:
            await asyncio.sleep(ping_interval)

            for connection_id, websocket in list(connections.clients.items()):
                try:
                    await websocket.ping()
                except ConnectionClosed:
                    logger.debug(f"Ping skipped, {connection_id} already closed")
