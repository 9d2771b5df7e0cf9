"""
Common types and constants for the Presence Relay system.

This module centralizes event names and world constants shared by the
relay and its clients, to avoid hardcoding them throughout the codebase.
"""

from typing import Final, FrozenSet, Tuple

# Presence events: client -> relay
EVT_JOIN_ROOM: Final[str] = "join:room"
EVT_LEAVE_ROOM: Final[str] = "leave:room"
EVT_PLAYER_MOVE: Final[str] = "player:move"

# Presence events: relay -> client
EVT_CONNECTION_READY: Final[str] = "connection:ready"
EVT_ROOM_STATE: Final[str] = "room:state"
EVT_SELF_PLAYER: Final[str] = "self:player"
EVT_PLAYER_JOINED: Final[str] = "player:joined"
EVT_PLAYER_MOVED: Final[str] = "player:moved"
EVT_PLAYER_LEFT: Final[str] = "player:left"
EVT_ERROR: Final[str] = "error"

# Call signaling: peer -> relay -> peer
EVT_CALL_REQUEST: Final[str] = "call:request"
EVT_CALL_ACCEPT: Final[str] = "call:accept"
EVT_CALL_DECLINE: Final[str] = "call:decline"
EVT_CALL_END: Final[str] = "call:end"
EVT_SESSION_OFFER: Final[str] = "webrtc:offer"
EVT_SESSION_ANSWER: Final[str] = "webrtc:answer"
EVT_NETWORK_CANDIDATE: Final[str] = "webrtc:ice"

SIGNALING_EVENTS: Final[FrozenSet[str]] = frozenset(
    {
        EVT_CALL_REQUEST,
        EVT_CALL_ACCEPT,
        EVT_CALL_DECLINE,
        EVT_CALL_END,
        EVT_SESSION_OFFER,
        EVT_SESSION_ANSWER,
        EVT_NETWORK_CANDIDATE,
    }
)

# Signaling payload keys
KEY_TARGET: Final[str] = "to"
KEY_SENDER: Final[str] = "from"

# World spawn area; clients initialise their own avatar at the same centre
SPAWN_CENTER_X: Final[float] = 800.0
SPAWN_CENTER_Y: Final[float] = 600.0
SPAWN_SPREAD: Final[float] = 160.0

# Avatar colours, reused modulo length once a room outgrows the palette
COLOR_PALETTE: Final[Tuple[str, ...]] = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#96CEB4",
    "#FFEAA7",
    "#DDA0DD",
    "#98D8C8",
    "#F7DC6F",
)

# Default Values
DEFAULT_RELAY_PORT: Final[int] = 3001
DEFAULT_API_PORT: Final[int] = 3002
DEFAULT_RELAY_URL: Final[str] = "ws://localhost:3001"
