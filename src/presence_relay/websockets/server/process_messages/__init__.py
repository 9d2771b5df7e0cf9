"""
Message processing modules for WebSocket relay server.

This package contains handlers for the presence and signaling frames.
"""

from .presence_message import PresenceMessageHandler
from .signaling_message import SignalingMessageHandler
from .utils import ConnectionUtils

__all__ = [
    "PresenceMessageHandler",
    "SignalingMessageHandler",
    "ConnectionUtils",
]
