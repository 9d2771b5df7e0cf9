"""
Test suite for the Presence Relay system.

This package contains tests organized by type:
- Unit tests for individual components
- Integration tests running a real relay over WebSockets
"""
