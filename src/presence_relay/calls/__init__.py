"""
Call signaling state machine for relay endpoints.

Sets up a direct two-party audio channel by exchanging session
descriptions and network-path candidates through the relay.
"""

from .manager import CallManager
from .media import AudioSource, PeerConnection
from .session import CallSession
from .state import CallState

__all__ = [
    "CallManager",
    "CallSession",
    "CallState",
    "AudioSource",
    "PeerConnection",
]
