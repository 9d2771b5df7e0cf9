"""
WebSocket server implementation for the presence relay.

This module contains the PresenceRelayServer class and its message handlers.
"""

from .relay_server import PresenceRelayServer

__all__ = [
    "PresenceRelayServer",
]
