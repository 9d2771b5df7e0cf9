"""
Media abstractions used by the call state machine.

The relay never carries audio; an endpoint plugs in a concrete backend
(a WebRTC stack, a test double, ...) by subclassing these two classes.
Session descriptions and candidates are plain JSON-compatible dicts that
the library passes around without reading.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional, Union

SessionDescription = Dict[str, Any]
Candidate = Dict[str, Any]

Listener = Callable[..., Union[None, Awaitable[None]]]


async def _notify(listener: Optional[Listener], *args: Any) -> None:
    if listener is None:
        return
    result = listener(*args)
    if inspect.isawaitable(result):
        await result


class AudioSource(ABC):
    """Local microphone capture."""

    @abstractmethod
    async def start(self) -> None:
        """
        Acquire the device.

        Raises:
            MediaAcquisitionError: If the device is unavailable or permission is denied
        """

    @abstractmethod
    def set_enabled(self, enabled: bool) -> None:
        """Mute or unmute without releasing the device."""

    @abstractmethod
    async def stop(self) -> None:
        """Release the device."""


class PeerConnection(ABC):
    """
    One direct media channel to a single peer.

    Backends report asynchronous discoveries through ``emit_candidate``,
    ``emit_remote_audio`` and ``emit_state``; the call manager installs
    the matching listeners.
    """

    def __init__(self) -> None:
        self.on_candidate: Optional[Listener] = None
        self.on_remote_audio: Optional[Listener] = None
        self.on_state_change: Optional[Listener] = None

    @abstractmethod
    def add_audio(self, source: AudioSource) -> None:
        """Attach the local audio source to the outgoing stream."""

    @abstractmethod
    async def create_offer(self) -> SessionDescription:
        pass

    @abstractmethod
    async def create_answer(self) -> SessionDescription:
        pass

    @abstractmethod
    async def set_local_description(self, description: SessionDescription) -> None:
        pass

    @abstractmethod
    async def set_remote_description(self, description: SessionDescription) -> None:
        pass

    @abstractmethod
    async def add_candidate(self, candidate: Candidate) -> None:
        """Apply a remote network-path candidate; may raise on bad input."""

    @abstractmethod
    async def close(self) -> None:
        pass

    async def emit_candidate(self, candidate: Candidate) -> None:
        await _notify(self.on_candidate, candidate)

    async def emit_remote_audio(self) -> None:
        await _notify(self.on_remote_audio)

    async def emit_state(self, state: str) -> None:
        await _notify(self.on_state_change, state)


PeerConnectionFactory = Callable[[], PeerConnection]
AudioSourceFactory = Callable[[], AudioSource]
