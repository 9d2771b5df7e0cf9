"""
Per-peer call session.

Candidates describing network paths are discovered independently of the
session-description exchange, so they can reach us before the remote
description they must be applied against. Until that description is set
they wait in an ordered buffer; setting it drains the buffer in arrival
order. A candidate that fails to apply is logged and skipped.
"""

from typing import List, Optional

from presence_relay.infrastructure.logging import setup_logging
from .media import AudioSource, Candidate, PeerConnection, SessionDescription
from .state import CallState

logger = setup_logging(component_name="calls")


class CallSession:
    """State one endpoint keeps about a single call with one peer."""

    def __init__(self, peer_id: str, state: CallState) -> None:
        self.peer_id = peer_id
        self.state = state

        self.peer_connection: Optional[PeerConnection] = None
        self.audio_source: Optional[AudioSource] = None

        self.local_description: Optional[SessionDescription] = None
        self.remote_description: Optional[SessionDescription] = None

        # Offer received while the user has not yet accepted
        self.pending_offer: Optional[SessionDescription] = None
        self.accepted = False

        self.pending_candidates: List[Candidate] = []
        self.applied_candidates = 0

    @property
    def remote_description_set(self) -> bool:
        return self.remote_description is not None and self.peer_connection is not None

    async def add_candidate(self, candidate: Candidate) -> bool:
        """
        Apply a candidate now, or buffer it until the remote description is set.

        Returns:
            True if the candidate was applied immediately
        """
        if not self.remote_description_set:
            self.pending_candidates.append(candidate)
            logger.debug(
                f"Buffered candidate for {self.peer_id} "
                f"({len(self.pending_candidates)} pending)"
            )
            return False

        return await self._apply_candidate(candidate)

    async def set_local_description(self, description: SessionDescription) -> None:
        await self.peer_connection.set_local_description(description)
        self.local_description = description

    async def set_remote_description(self, description: SessionDescription) -> None:
        """Set the remote description and flush every buffered candidate."""
        await self.peer_connection.set_remote_description(description)
        self.remote_description = description
        await self.flush_candidates()

    async def flush_candidates(self) -> int:
        """Apply buffered candidates in arrival order and clear the buffer."""
        pending, self.pending_candidates = self.pending_candidates, []
        applied = 0
        for candidate in pending:
            if await self._apply_candidate(candidate):
                applied += 1
        return applied

    async def _apply_candidate(self, candidate: Candidate) -> bool:
        try:
            await self.peer_connection.add_candidate(candidate)
        except Exception as e:
            logger.debug(f"Ignoring candidate from {self.peer_id} that failed to apply: {e}")
            return False
        self.applied_candidates += 1
        return True

    async def release(self) -> None:
        """Stop local audio and close the peer connection; never raises."""
        if self.audio_source is not None:
            try:
                await self.audio_source.stop()
            except Exception as e:
                logger.warning(f"Error stopping audio for call with {self.peer_id}: {e}")
            self.audio_source = None

        if self.peer_connection is not None:
            try:
                await self.peer_connection.close()
            except Exception as e:
                logger.warning(f"Error closing peer connection to {self.peer_id}: {e}")
            self.peer_connection = None

        self.pending_candidates = []
        self.pending_offer = None
