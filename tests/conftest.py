"""
Pytest configuration and shared fixtures for the Presence Relay test suite.

This module provides fakes for the WebSocket transport and for the media
backend so components can be exercised without sockets or audio devices.
"""

import logging
import random
import uuid
from typing import Any, Dict, List, Optional, Tuple

import pytest

from presence_relay.calls.media import AudioSource, PeerConnection
from presence_relay.core import ConnectionRegistry, PresenceSynchronizer, RoomStore
from presence_relay.core.protocol import decode_event
from presence_relay.core.types import KEY_SENDER, KEY_TARGET
from presence_relay.infrastructure.exceptions import MediaAcquisitionError
from presence_relay.websockets.client import EventDispatcher


class FakeWebSocket:
    """Stand-in for a server-side connection; records decoded frames."""

    def __init__(self) -> None:
        self.id = uuid.uuid4()
        self.remote_address = ("127.0.0.1", 12345)
        self.sent: List[Tuple[str, Any]] = []
        self.pings = 0

    async def ping(self) -> None:
        self.pings += 1

    def events(self, name: str) -> List[Any]:
        """Payloads of every frame named ``name`` received so far."""
        return [data for event, data in self.sent if event == name]


@pytest.fixture
def fake_broadcast(monkeypatch):
    """Route ConnectionRegistry.send into FakeWebSocket.sent."""
    calls: List[Tuple[List[FakeWebSocket], str]] = []

    def _broadcast(connections, message):
        connections = list(connections)
        calls.append((connections, message))
        for websocket in connections:
            websocket.sent.append(decode_event(message))

    monkeypatch.setattr(
        "presence_relay.core.connection_registry.broadcast", _broadcast
    )
    return calls


@pytest.fixture
def registry(fake_broadcast):
    return ConnectionRegistry()


@pytest.fixture
def store():
    return RoomStore(rng=random.Random(1234))


@pytest.fixture
def presence(store, registry):
    return PresenceSynchronizer(store, registry)


@pytest.fixture
def connect(registry):
    """Register a new fake connection and return ``(id, websocket)``."""

    def _connect() -> Tuple[str, FakeWebSocket]:
        websocket = FakeWebSocket()
        return registry.on_connect(websocket), websocket

    return _connect


# ── Call fakes ────────────────────────────────────────────────────


class FakeAudioSource(AudioSource):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.started = False
        self.stopped = False
        self.enabled = True

    async def start(self) -> None:
        if self.fail:
            raise MediaAcquisitionError("permission denied")
        self.started = True

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled

    async def stop(self) -> None:
        self.stopped = True


class FakePeerConnection(PeerConnection):
    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self.audio: Optional[AudioSource] = None
        self.local_description: Optional[Dict[str, Any]] = None
        self.remote_description: Optional[Dict[str, Any]] = None
        self.applied: List[Dict[str, Any]] = []
        self.rejected: List[Dict[str, Any]] = []
        self.closed = False

    def add_audio(self, source: AudioSource) -> None:
        self.audio = source

    async def create_offer(self):
        return {"type": "offer", "sdp": f"offer-from-{self.name}"}

    async def create_answer(self):
        return {"type": "answer", "sdp": f"answer-from-{self.name}"}

    async def set_local_description(self, description) -> None:
        self.local_description = description

    async def set_remote_description(self, description) -> None:
        if self.remote_description is not None:
            raise RuntimeError("remote description already set")
        self.remote_description = description

    async def add_candidate(self, candidate) -> None:
        if self.remote_description is None:
            raise RuntimeError("candidate applied before remote description")
        if candidate.get("bad"):
            self.rejected.append(candidate)
            raise ValueError("malformed candidate")
        self.applied.append(candidate)

    async def close(self) -> None:
        self.closed = True


class FakeNetwork:
    """In-memory relay between fake clients with controllable delivery order."""

    def __init__(self) -> None:
        self.clients: Dict[str, "FakeSignalingClient"] = {}
        self.queue: List[Tuple[str, str, Dict[str, Any]]] = []

    def pending(self, event: Optional[str] = None) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [m for m in self.queue if event is None or m[1] == event]

    async def deliver_next(self, event: Optional[str] = None) -> bool:
        """Deliver the oldest queued message, optionally of one event type."""
        for index, (target, name, payload) in enumerate(self.queue):
            if event is None or name == event:
                del self.queue[index]
                client = self.clients.get(target)
                if client is not None and client.connected:
                    await client.dispatcher.dispatch(name, payload)
                return True
        return False

    async def flush(self) -> None:
        while await self.deliver_next():
            pass


class FakeSignalingClient:
    """Implements the slice of SignalingClient that CallManager uses."""

    def __init__(self, connection_id: str, network: FakeNetwork) -> None:
        self.connection_id = connection_id
        self.network = network
        self.dispatcher = EventDispatcher(logging.getLogger(f"fake.{connection_id}"))
        self.connected = True
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []
        network.clients[connection_id] = self

    def on(self, event, handler):
        return self.dispatcher.subscribe(event, handler)

    async def send_to(self, event: str, target_id: str, **fields: Any) -> bool:
        if not self.connected:
            return False
        self.sent.append((event, target_id, fields))
        payload = {KEY_TARGET: target_id, **fields, KEY_SENDER: self.connection_id}
        self.network.queue.append((target_id, event, payload))
        return True

    def sent_events(self) -> List[str]:
        return [event for event, _, _ in self.sent]


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def make_endpoint(network):
    """Build a CallManager wired to fake media and the fake network."""
    from presence_relay.calls import CallManager

    def _make(connection_id: str, audio_fails: bool = False):
        client = FakeSignalingClient(connection_id, network)
        peer_connections: List[FakePeerConnection] = []
        audio_sources: List[FakeAudioSource] = []
        states: List[str] = []
        errors: List[str] = []

        def pc_factory():
            pc = FakePeerConnection(connection_id)
            peer_connections.append(pc)
            return pc

        def audio_factory():
            source = FakeAudioSource(fail=audio_fails)
            audio_sources.append(source)
            return source

        manager = CallManager(
            client,
            pc_factory,
            audio_factory,
            on_state_change=lambda s: states.append(s.value),
            on_error=errors.append,
        )
        manager.attach()
        manager.test_client = client
        manager.test_peer_connections = peer_connections
        manager.test_audio_sources = audio_sources
        manager.test_states = states
        manager.test_errors = errors
        return manager

    return _make


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
