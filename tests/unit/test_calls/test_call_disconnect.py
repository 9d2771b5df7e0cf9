"""
Unit tests for calls ending when either party drops off the relay.

Endpoints here talk through the real ConnectionRegistry and SignalingRelay;
only the socket writes are faked, so every frame the surviving side sees
was produced by the relay.
"""

import logging

import pytest

from presence_relay.calls import CallManager, CallState
from presence_relay.core import SignalingRelay
from presence_relay.core.types import KEY_TARGET
from presence_relay.websockets.client import EVT_DISCONNECTED, EventDispatcher
from tests.conftest import FakeAudioSource, FakePeerConnection, FakeWebSocket


class RelayedClient:
    """Client double whose frames go through SignalingRelay."""

    def __init__(self, registry, signaling: SignalingRelay) -> None:
        self.websocket = FakeWebSocket()
        self.registry = registry
        self.signaling = signaling
        self.connection_id = registry.on_connect(self.websocket)
        self.dispatcher = EventDispatcher(logging.getLogger("test.relayed"))
        self._delivered = 0

    def on(self, event, handler):
        return self.dispatcher.subscribe(event, handler)

    async def send_to(self, event, target_id, **fields):
        if not self.registry.is_registered(self.connection_id):
            return False
        self.signaling.relay(event, self.connection_id, {KEY_TARGET: target_id, **fields})
        return True

    async def pump(self) -> int:
        """Dispatch frames the relay wrote to this connection since the last pump."""
        count = 0
        while self._delivered < len(self.websocket.sent):
            event, data = self.websocket.sent[self._delivered]
            self._delivered += 1
            await self.dispatcher.dispatch(event, data)
            count += 1
        return count

    async def drop(self) -> None:
        """Lose the relay: the server unregisters us, we notice locally."""
        self.registry.on_disconnect(self.connection_id)
        await self.dispatcher.dispatch(EVT_DISCONNECTED, None)


async def settle(*clients):
    while True:
        delivered = 0
        for client in clients:
            delivered += await client.pump()
        if not delivered:
            return


@pytest.fixture
def signaling(registry):
    return SignalingRelay(registry)


@pytest.fixture
def endpoint(registry, signaling):
    def _make():
        client = RelayedClient(registry, signaling)
        manager = CallManager(
            client,
            lambda: FakePeerConnection(client.connection_id),
            FakeAudioSource,
        )
        manager.attach()
        return client, manager

    return _make


class TestDisconnectEndsCall:

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("dropped", ["caller", "callee"])
    @pytest.mark.parametrize("answered", [False, True])
    async def test_either_party_dropping_idles_both(self, endpoint, dropped, answered):
        client_a, caller = endpoint()
        client_b, callee = endpoint()

        await caller.start_call(client_b.connection_id)
        await settle(client_a, client_b)
        assert callee.state == CallState.RECEIVING
        if answered:
            await callee.accept_call()
            await settle(client_a, client_b)
            assert caller.state == CallState.CONNECTED
            assert callee.state == CallState.CONNECTED

        gone, survivor = (client_a, client_b) if dropped == "caller" else (client_b, client_a)
        await gone.drop()
        await settle(survivor)

        assert caller.state == CallState.IDLE
        assert callee.state == CallState.IDLE
        assert survivor.websocket.events("call:end") == [
            {"to": survivor.connection_id, "from": gone.connection_id}
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bystander_call_survives_unrelated_drop(self, endpoint):
        client_a, a = endpoint()
        client_b, b = endpoint()
        client_c, _ = endpoint()

        await a.start_call(client_b.connection_id)
        await settle(client_a, client_b)
        await b.accept_call()
        await settle(client_a, client_b)

        await client_c.drop()
        await settle(client_a, client_b)

        assert a.state == CallState.CONNECTED
        assert b.state == CallState.CONNECTED
