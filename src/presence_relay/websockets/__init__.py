"""
WebSocket transport for the Presence Relay.

This package contains the relay server and the endpoint client.
"""
