"""
Signaling message handler for the WebSocket relay server.

Call requests, session descriptions and candidates are handed to the
SignalingRelay untouched.
"""

import logging
from typing import Any

from presence_relay.core import SignalingRelay
from presence_relay.core.types import SIGNALING_EVENTS


class SignalingMessageHandler:
    """Handles peer-to-peer call signaling frames."""

    def __init__(self, signaling: SignalingRelay, logger: logging.Logger) -> None:
        self.signaling = signaling
        self.logger = logger

    def handles(self, event: str) -> bool:
        return event in SIGNALING_EVENTS

    async def process_signaling_message(
        self, connection_id: str, event: str, data: Any
    ) -> None:
        """Relay a signaling frame to its target."""
        if self.signaling.relay(event, connection_id, data):
            self.logger.debug(f"Relayed {event} from {connection_id}")
