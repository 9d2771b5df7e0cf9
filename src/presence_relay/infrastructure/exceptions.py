"""
Custom exceptions for the Presence Relay system.

This module defines all custom exceptions used throughout the system,
providing clear error categorization and handling.
"""


class PresenceRelayError(Exception):
    """Base exception for all Presence Relay related errors."""

    pass


class ConfigurationError(PresenceRelayError):
    """Raised when there are configuration-related errors."""

    pass


class NetworkError(PresenceRelayError):
    """Raised when there are network communication errors."""

    pass


class WebSocketError(NetworkError):
    """Raised when there are WebSocket communication errors."""

    pass


class ProtocolError(NetworkError):
    """Raised when a frame cannot be decoded into an event."""

    pass


class CallError(PresenceRelayError):
    """Raised when a call attempt cannot proceed."""

    pass


class MediaAcquisitionError(CallError):
    """Raised when the local audio device is unavailable or denied."""

    pass


class InvalidCallStateError(CallError):
    """Raised when a call operation is not allowed in the current state."""

    pass
