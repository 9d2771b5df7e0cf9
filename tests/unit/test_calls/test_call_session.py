"""
Unit tests for CallSession candidate buffering.
"""

import pytest

from presence_relay.calls import CallSession, CallState
from tests.conftest import FakePeerConnection


@pytest.fixture
def session():
    session = CallSession("peer", CallState.CALLING)
    session.peer_connection = FakePeerConnection("local")
    return session


class TestCandidateBuffering:
    """Candidates racing ahead of the remote description."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_candidates_buffer_until_remote_description(self, session):
        for index in range(3):
            assert await session.add_candidate({"n": index}) is False

        assert session.pending_candidates == [{"n": 0}, {"n": 1}, {"n": 2}]
        assert session.peer_connection.applied == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_setting_remote_description_drains_in_order(self, session):
        for index in range(5):
            await session.add_candidate({"n": index})

        await session.set_remote_description({"type": "answer"})

        assert session.peer_connection.applied == [{"n": i} for i in range(5)]
        assert session.pending_candidates == []
        assert session.applied_candidates == 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_candidates_after_description_apply_immediately(self, session):
        await session.add_candidate({"n": 0})
        await session.set_remote_description({"type": "answer"})

        assert await session.add_candidate({"n": 1}) is True

        # Nothing lost, nothing applied twice
        assert session.peer_connection.applied == [{"n": 0}, {"n": 1}]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bad_candidate_is_skipped_not_fatal(self, session):
        await session.add_candidate({"n": 0})
        await session.add_candidate({"n": 1, "bad": True})
        await session.add_candidate({"n": 2})

        await session.set_remote_description({"type": "answer"})

        assert session.peer_connection.applied == [{"n": 0}, {"n": 2}]
        assert session.peer_connection.rejected == [{"n": 1, "bad": True}]
        assert await session.add_candidate({"n": 3, "bad": True}) is False
        assert await session.add_candidate({"n": 4}) is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_buffers_while_no_peer_connection_exists(self):
        session = CallSession("peer", CallState.RECEIVING)

        await session.add_candidate({"n": 0})

        assert session.pending_candidates == [{"n": 0}]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_release_closes_everything_once(self, session):
        await session.add_candidate({"n": 0})
        pc = session.peer_connection

        await session.release()
        await session.release()

        assert pc.closed is True
        assert session.peer_connection is None
        assert session.pending_candidates == []
