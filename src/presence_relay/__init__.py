"""
Presence Relay - real-time presence synchronization and call signaling.

This package keeps every participant's position consistent across the
members of a shared room and relays the handshake two participants use to
open a direct peer-to-peer audio channel.

Architecture:
- Core: Room store, presence fan-out, signaling relay
- Calls: Endpoint-side call state machine
- WebSockets: Relay server and endpoint client
- API: Health and statistics over HTTP
- Config: Configuration management
- Infrastructure: Logging and exceptions
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
]
