"""
Configuration management for the Presence Relay system.

This package provides the relay settings dataclass and the manager that
fills it from environment variables.
"""

from .settings import RelayConfig, RelayConfigManager

__all__ = [
    "RelayConfig",
    "RelayConfigManager",
]
