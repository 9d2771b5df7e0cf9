"""Call lifecycle states."""

from enum import Enum
from typing import Dict, FrozenSet


class CallState(str, Enum):
    IDLE = "idle"
    CALLING = "calling"
    RECEIVING = "receiving"
    CONNECTED = "connected"


# Every non-idle state can always fall back to IDLE
TRANSITIONS: Dict[CallState, FrozenSet[CallState]] = {
    CallState.IDLE: frozenset({CallState.CALLING, CallState.RECEIVING}),
    CallState.CALLING: frozenset({CallState.CONNECTED, CallState.IDLE}),
    CallState.RECEIVING: frozenset({CallState.CONNECTED, CallState.IDLE}),
    CallState.CONNECTED: frozenset({CallState.IDLE}),
}


def can_transition(current: CallState, target: CallState) -> bool:
    return target in TRANSITIONS[current]
