"""
Endpoint-side call state machine.

One CallManager runs per endpoint and holds at most one call at a time.
It speaks to the peer only through the relay client, addressing every
signaling message by the peer's connection id.

    idle -> calling    start_call()
    idle -> receiving  incoming call:request
    receiving -> connected  accept_call() and the offer is answered
    calling -> connected    the peer's answer is applied
    any -> idle        end, decline, failure, or relay disconnect
"""

import logging
from typing import Any, Callable, List, Optional

from presence_relay.core.types import (
    EVT_CALL_ACCEPT,
    EVT_CALL_DECLINE,
    EVT_CALL_END,
    EVT_CALL_REQUEST,
    EVT_NETWORK_CANDIDATE,
    EVT_SESSION_ANSWER,
    EVT_SESSION_OFFER,
    KEY_SENDER,
)
from presence_relay.infrastructure.exceptions import (
    InvalidCallStateError,
    MediaAcquisitionError,
)
from presence_relay.infrastructure.logging import setup_logging
from presence_relay.websockets.client import (
    EVT_DISCONNECTED,
    SignalingClient,
    Subscription,
)
from .media import AudioSourceFactory, Candidate, PeerConnectionFactory
from .session import CallSession
from .state import CallState, can_transition

call_logger = setup_logging(component_name="calls")

MEDIA_ERROR_MESSAGE = "Microphone access denied or unavailable."
SETUP_ERROR_MESSAGE = "Call setup failed."
CONNECTION_FAILED_MESSAGE = "Connection failed. You may be behind a strict firewall."
NOT_CONNECTED_MESSAGE = "Not connected to the relay."


class CallManager:
    """Tracks the local side of a two-party audio call."""

    def __init__(
        self,
        client: SignalingClient,
        peer_connection_factory: PeerConnectionFactory,
        audio_source_factory: AudioSourceFactory,
        logger: Optional[logging.Logger] = None,
        on_state_change: Optional[Callable[[CallState], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.client = client
        self.peer_connection_factory = peer_connection_factory
        self.audio_source_factory = audio_source_factory
        self.logger = logger or call_logger
        self.on_state_change = on_state_change
        self.on_error = on_error

        self.session: Optional[CallSession] = None
        self.muted = False
        self._subscriptions: List[Subscription] = []

    @property
    def state(self) -> CallState:
        return self.session.state if self.session else CallState.IDLE

    @property
    def peer_id(self) -> Optional[str]:
        return self.session.peer_id if self.session else None

    def attach(self) -> None:
        """Subscribe to the signaling events this manager reacts to."""
        if self._subscriptions:
            return
        handlers = {
            EVT_CALL_REQUEST: self._on_call_request,
            EVT_CALL_ACCEPT: self._on_call_accept,
            EVT_CALL_DECLINE: self._on_call_decline,
            EVT_CALL_END: self._on_call_end,
            EVT_SESSION_OFFER: self._on_session_offer,
            EVT_SESSION_ANSWER: self._on_session_answer,
            EVT_NETWORK_CANDIDATE: self._on_network_candidate,
            EVT_DISCONNECTED: self._on_relay_disconnect,
        }
        self._subscriptions = [
            self.client.on(event, handler) for event, handler in handlers.items()
        ]

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

    # ── Local actions ─────────────────────────────────────────────

    async def start_call(self, peer_id: str) -> None:
        """Ring ``peer_id`` and send it our offer."""
        if self.state != CallState.IDLE:
            raise InvalidCallStateError(f"Cannot start a call while {self.state.value}")

        session = CallSession(peer_id, CallState.IDLE)
        self.session = session
        self._set_state(session, CallState.CALLING)
        if not await self.client.send_to(EVT_CALL_REQUEST, peer_id):
            await self._fail(session, NOT_CONNECTED_MESSAGE)
            return

        try:
            await self._prepare_media(session)
            if not self._is_current(session):
                return

            offer = await session.peer_connection.create_offer()
            await session.set_local_description(offer)
            if not self._is_current(session):
                return

            await self.client.send_to(EVT_SESSION_OFFER, peer_id, sdp=offer)
        except MediaAcquisitionError as e:
            self.logger.warning(f"Audio unavailable for call to {peer_id}: {e}")
            await self._fail(session, MEDIA_ERROR_MESSAGE)
        except Exception as e:
            self.logger.error(f"Failed to start call to {peer_id}: {e}", exc_info=True)
            await self._fail(session, SETUP_ERROR_MESSAGE)

    async def accept_call(self) -> None:
        """Accept the ringing call; the answer goes out once the offer is in."""
        session = self.session
        if session is None or session.state != CallState.RECEIVING:
            raise InvalidCallStateError(f"No incoming call to accept ({self.state.value})")
        if session.accepted:
            return

        session.accepted = True
        await self.client.send_to(EVT_CALL_ACCEPT, session.peer_id)

        try:
            await self._prepare_media(session)
            if not self._is_current(session):
                return
            if session.pending_offer is not None:
                await self._answer(session)
        except MediaAcquisitionError as e:
            self.logger.warning(f"Audio unavailable for call from {session.peer_id}: {e}")
            await self._fail(session, MEDIA_ERROR_MESSAGE)
        except Exception as e:
            self.logger.error(
                f"Failed to accept call from {session.peer_id}: {e}", exc_info=True
            )
            await self._fail(session, SETUP_ERROR_MESSAGE)

    async def decline_call(self) -> None:
        """Reject the ringing call."""
        session = self.session
        if session is None or session.state != CallState.RECEIVING:
            return
        await self.client.send_to(EVT_CALL_DECLINE, session.peer_id)
        await self._teardown(session, notify_peer=False)

    async def end_call(self) -> None:
        """Hang up from any state, telling the peer."""
        if self.session is not None:
            await self._teardown(self.session, notify_peer=True)

    def set_muted(self, muted: bool) -> None:
        """Mute or unmute the microphone without ending the call."""
        self.muted = muted
        if self.session and self.session.audio_source:
            self.session.audio_source.set_enabled(not muted)

    # ── Relay events ──────────────────────────────────────────────

    async def _on_call_request(self, payload: Any) -> None:
        caller = _sender(payload)
        if caller is None:
            return

        if self.session is not None:
            if caller != self.session.peer_id:
                self.logger.info(f"Busy, declining call from {caller}")
                await self.client.send_to(EVT_CALL_DECLINE, caller)
            return

        session = CallSession(caller, CallState.IDLE)
        self.session = session
        self._set_state(session, CallState.RECEIVING)

    async def _on_call_accept(self, payload: Any) -> None:
        session = self._session_for(payload)
        if session and session.state == CallState.CALLING:
            self.logger.info(f"{session.peer_id} accepted, waiting for answer")

    async def _on_call_decline(self, payload: Any) -> None:
        session = self._session_for(payload)
        if session is None:
            return
        await self._teardown(session, notify_peer=False)
        self._report_error("They declined the call.")

    async def _on_call_end(self, payload: Any) -> None:
        session = self._session_for(payload)
        if session is not None:
            await self._teardown(session, notify_peer=False)

    async def _on_session_offer(self, payload: Any) -> None:
        session = self._session_for(payload)
        if session is None or session.state != CallState.RECEIVING:
            return

        session.pending_offer = payload.get("sdp")
        if session.accepted and session.peer_connection is not None:
            try:
                await self._answer(session)
            except Exception as e:
                self.logger.error(f"Failed to answer {session.peer_id}: {e}", exc_info=True)
                await self._fail(session, SETUP_ERROR_MESSAGE)

    async def _on_session_answer(self, payload: Any) -> None:
        session = self._session_for(payload)
        if session is None or session.state != CallState.CALLING:
            return
        if session.peer_connection is None:
            self.logger.warning(f"Answer from {session.peer_id} before our offer, ignored")
            return

        try:
            await session.set_remote_description(payload.get("sdp"))
        except Exception as e:
            self.logger.error(f"Bad answer from {session.peer_id}: {e}", exc_info=True)
            await self._fail(session, SETUP_ERROR_MESSAGE)
            return

        if self._is_current(session):
            self._set_state(session, CallState.CONNECTED)

    async def _on_network_candidate(self, payload: Any) -> None:
        session = self._session_for(payload)
        if session is None:
            return
        candidate: Optional[Candidate] = payload.get("candidate")
        if candidate is None:
            return
        await session.add_candidate(candidate)

    async def _on_relay_disconnect(self, _payload: Any = None) -> None:
        if self.session is not None:
            self.logger.info("Relay connection lost, ending call")
            await self._teardown(self.session, notify_peer=False)

    # ── Internals ─────────────────────────────────────────────────

    async def _prepare_media(self, session: CallSession) -> None:
        """Acquire the microphone and build the peer connection."""
        audio = self.audio_source_factory()
        session.audio_source = audio
        await audio.start()
        audio.set_enabled(not self.muted)

        peer_connection = self.peer_connection_factory()
        session.peer_connection = peer_connection
        peer_connection.add_audio(audio)
        peer_connection.on_candidate = lambda c: self._send_candidate(session, c)
        peer_connection.on_remote_audio = lambda: self._on_remote_audio(session)
        peer_connection.on_state_change = lambda s: self._on_peer_state(session, s)

    async def _answer(self, session: CallSession) -> None:
        offer, session.pending_offer = session.pending_offer, None
        await session.set_remote_description(offer)

        answer = await session.peer_connection.create_answer()
        await session.set_local_description(answer)
        if not self._is_current(session):
            return

        await self.client.send_to(EVT_SESSION_ANSWER, session.peer_id, sdp=answer)
        self._set_state(session, CallState.CONNECTED)

    async def _send_candidate(self, session: CallSession, candidate: Candidate) -> None:
        if self._is_current(session):
            await self.client.send_to(
                EVT_NETWORK_CANDIDATE, session.peer_id, candidate=candidate
            )

    async def _on_remote_audio(self, session: CallSession) -> None:
        self.logger.info(f"Receiving audio from {session.peer_id}")

    async def _on_peer_state(self, session: CallSession, state: str) -> None:
        if not self._is_current(session):
            return
        if state == "failed":
            await self._fail(session, CONNECTION_FAILED_MESSAGE)
        elif state in ("disconnected", "closed"):
            await self._teardown(session, notify_peer=False)

    async def _fail(self, session: CallSession, message: str) -> None:
        if not self._is_current(session):
            return
        await self._teardown(session, notify_peer=True)
        self._report_error(message)

    async def _teardown(self, session: CallSession, notify_peer: bool) -> None:
        """Return to idle, releasing media exactly once per session."""
        if not self._is_current(session):
            return

        self.session = None
        if notify_peer and session.state != CallState.IDLE:
            await self.client.send_to(EVT_CALL_END, session.peer_id)

        await session.release()
        self.muted = False
        self._set_state(session, CallState.IDLE)

    def _set_state(self, session: CallSession, state: CallState) -> None:
        if session.state == state:
            return
        if not can_transition(session.state, state):
            raise InvalidCallStateError(
                f"Illegal transition {session.state.value} -> {state.value}"
            )
        self.logger.debug(f"Call with {session.peer_id}: {session.state.value} -> {state.value}")
        session.state = state
        if self.on_state_change:
            self.on_state_change(state)

    def _report_error(self, message: str) -> None:
        self.logger.warning(message)
        if self.on_error:
            self.on_error(message)

    def _is_current(self, session: CallSession) -> bool:
        return self.session is session

    def _session_for(self, payload: Any) -> Optional[CallSession]:
        """The active session, if ``payload`` comes from its peer."""
        sender = _sender(payload)
        if self.session is not None and sender == self.session.peer_id:
            return self.session
        return None


def _sender(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and isinstance(payload.get(KEY_SENDER), str):
        return payload[KEY_SENDER]
    return None
