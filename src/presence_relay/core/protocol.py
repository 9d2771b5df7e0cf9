"""
JSON wire codec for relay events.

Every frame is a text WebSocket message holding ``{"event": ..., "data": ...}``.
The ``data`` member is passed through untouched; signaling payloads stay
opaque blobs to the relay.
"""

import json
from typing import Any, Tuple

from presence_relay.infrastructure.exceptions import ProtocolError


def encode_event(event: str, data: Any = None) -> str:
    """Serialize an event and its payload into a text frame."""
    return json.dumps({"event": event, "data": data}, separators=(",", ":"))


def decode_event(message: Any) -> Tuple[str, Any]:
    """
    Parse a text frame into ``(event, data)``.

    Raises:
        ProtocolError: If the frame is binary, not JSON, or has no event name
    """
    if isinstance(message, (bytes, bytearray)):
        raise ProtocolError("Binary frames are not supported")

    try:
        frame = json.loads(message)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid JSON: {e}") from e

    if not isinstance(frame, dict):
        raise ProtocolError("Frame must be a JSON object")

    event = frame.get("event")
    if not isinstance(event, str) or not event:
        raise ProtocolError("Frame is missing an event name")

    return event, frame.get("data")
