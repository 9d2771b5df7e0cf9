"""
Infrastructure components for the Presence Relay system.

This package contains infrastructure concerns including:
- Logging configuration and utilities with production controls
- Custom exception definitions
"""

from .logging import setup_logging, get_logger, apply_log_level, LoggingContext
from .logging_manager import (
    LoggingManager,
    Environment,
    is_production,
    get_environment,
)
from .exceptions import (
    PresenceRelayError,
    ConfigurationError,
    NetworkError,
    WebSocketError,
    ProtocolError,
    CallError,
    MediaAcquisitionError,
    InvalidCallStateError,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "apply_log_level",
    "LoggingContext",
    "LoggingManager",
    "Environment",
    "is_production",
    "get_environment",
    # Exceptions
    "PresenceRelayError",
    "ConfigurationError",
    "NetworkError",
    "WebSocketError",
    "ProtocolError",
    "CallError",
    "MediaAcquisitionError",
    "InvalidCallStateError",
]
