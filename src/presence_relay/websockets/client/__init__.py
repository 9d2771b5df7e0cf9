"""
WebSocket client for the presence relay.
"""

from .dispatcher import EventDispatcher, Subscription
from .websocket_client import EVT_DISCONNECTED, SignalingClient

__all__ = [
    "EventDispatcher",
    "Subscription",
    "SignalingClient",
    "EVT_DISCONNECTED",
]
