"""
Store-and-forward relay for call signaling.

The relay is a dumb pipe: it reads the target id, stamps the sender id and
forwards everything else verbatim. It never looks inside session
descriptions or candidates and never checks room membership.

It does remember who has been signaling with whom. When a connection
drops, every counterpart still in a call with it receives a ``call:end``
carrying the departed id, so no call is left ringing or connected on the
surviving side.
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from presence_relay.infrastructure.logging import setup_logging
from .connection_registry import ConnectionRegistry
from .types import (
    EVT_CALL_DECLINE,
    EVT_CALL_END,
    KEY_SENDER,
    KEY_TARGET,
    SIGNALING_EVENTS,
)

logger = setup_logging(component_name="signaling")

# Events after which the two parties no longer share a call
TERMINAL_EVENTS = frozenset({EVT_CALL_END, EVT_CALL_DECLINE})


class SignalingRelay:
    """Forwards call-setup messages to a target connection by identifier."""

    def __init__(self, connections: ConnectionRegistry) -> None:
        self.connections = connections
        self._relayed = 0
        self._dropped = 0

        # connection_id -> ids it has an unfinished call exchange with
        self._counterparts: Dict[str, Set[str]] = defaultdict(set)

        self.connections.add_disconnect_listener(self.on_disconnect)

    def relay(self, event: str, sender_id: str, payload: Any) -> bool:
        """
        Forward ``payload`` to ``payload["to"]`` tagged with the sender.

        An unknown or departed target is the normal "they already hung up"
        case and is dropped silently.

        Returns:
            True if the message was handed to the target connection
        """
        if event not in SIGNALING_EVENTS:
            logger.warning(f"Refusing to relay non-signaling event {event!r}")
            return False

        if not isinstance(payload, dict) or not isinstance(
            payload.get(KEY_TARGET), str
        ):
            logger.warning(f"Dropping {event} from {sender_id}: no target id")
            self._dropped += 1
            return False

        target_id = payload[KEY_TARGET]
        forwarded: Dict[str, Any] = {**payload, KEY_SENDER: sender_id}

        if event in TERMINAL_EVENTS:
            self._unpair(sender_id, target_id)

        if not self.connections.send([target_id], event, forwarded):
            logger.debug(f"Dropping {event} from {sender_id}: {target_id} is gone")
            self._dropped += 1
            return False

        if event not in TERMINAL_EVENTS:
            self._pair(sender_id, target_id)

        self._relayed += 1
        return True

    def on_disconnect(self, connection_id: str, _room_id: Optional[str]) -> None:
        """Disconnect listener: end every call the departed connection was in."""
        counterparts = self._counterparts.pop(connection_id, set())
        for peer_id in counterparts:
            self._discard(peer_id, connection_id)

        notified = 0
        for peer_id in sorted(counterparts):
            notified += self.connections.send(
                [peer_id],
                EVT_CALL_END,
                {KEY_TARGET: peer_id, KEY_SENDER: connection_id},
            )
        if notified:
            logger.info(f"[C] {connection_id} dropped, ended {notified} call(s)")

    def get_counterparts(self, connection_id: str) -> List[str]:
        return sorted(self._counterparts.get(connection_id, ()))

    def _pair(self, a: str, b: str) -> None:
        self._counterparts[a].add(b)
        self._counterparts[b].add(a)

    def _unpair(self, a: str, b: str) -> None:
        self._discard(a, b)
        self._discard(b, a)

    def _discard(self, owner: str, peer_id: str) -> None:
        peers = self._counterparts.get(owner)
        if peers is None:
            return
        peers.discard(peer_id)
        if not peers:
            del self._counterparts[owner]

    def get_stats(self) -> Dict[str, int]:
        return {"relayed": self._relayed, "dropped": self._dropped}
