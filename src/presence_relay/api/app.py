"""
FastAPI application exposing relay health and statistics.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from presence_relay import __version__
from presence_relay.websockets.server import PresenceRelayServer

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Response model for the liveness probe."""
    status: str
    uptime: float


class StatsResponse(BaseModel):
    """Response model for relay statistics."""
    server_running: bool
    connections: int
    rooms: int
    participants: int
    room_sizes: Dict[str, int]
    relayed_signals: int
    dropped_signals: int


def create_app(
    relay: PresenceRelayServer,
    cors_origins: Optional[List[str]] = None,
    started_at: Optional[float] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        relay: Relay whose state the endpoints report on
        cors_origins: Allowed origins; defaults to the relay's configuration
        started_at: Monotonic start time used for uptime

    Returns:
        Configured FastAPI application
    """
    start = time.monotonic() if started_at is None else started_at

    app = FastAPI(
        title="Presence Relay API",
        description="Health and statistics for the presence relay",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or relay.config.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Liveness probe for load balancers and deploy platforms."""
        return HealthResponse(status="ok", uptime=round(time.monotonic() - start, 3))

    @app.get("/stats", response_model=StatsResponse)
    async def stats() -> StatsResponse:
        raw: Dict[str, Any] = relay.get_stats()
        return StatsResponse(
            server_running=raw["server_running"],
            connections=raw["registry_stats"]["total_connections"],
            rooms=raw["room_stats"]["rooms"],
            participants=raw["room_stats"]["participants"],
            room_sizes=raw["room_stats"]["room_sizes"],
            relayed_signals=raw["signaling_stats"]["relayed"],
            dropped_signals=raw["signaling_stats"]["dropped"],
        )

    return app
