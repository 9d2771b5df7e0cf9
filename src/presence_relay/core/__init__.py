"""
Core relay components for the Presence Relay system.

This package contains the shared room state and the logic that decides
who hears about which change.
"""

from .connection_registry import ConnectionRegistry
from .room_store import JoinResult, LeaveResult, Participant, RoomStore
from .presence import PresenceSynchronizer
from .signaling import SignalingRelay

__all__ = [
    "ConnectionRegistry",
    "RoomStore",
    "Participant",
    "JoinResult",
    "LeaveResult",
    "PresenceSynchronizer",
    "SignalingRelay",
]
