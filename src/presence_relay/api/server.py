"""
API server runner sharing the relay's event loop.
"""

import logging

import uvicorn

from presence_relay.websockets.server import PresenceRelayServer
from .app import create_app

logger = logging.getLogger(__name__)


def build_api_server(relay: PresenceRelayServer) -> uvicorn.Server:
    """Build a uvicorn server for the relay's HTTP API without starting it."""
    app = create_app(relay)
    config = uvicorn.Config(
        app=app,
        host=relay.config.api_host,
        port=relay.config.api_port,
        log_level=(relay.config.log_level or "info").lower(),
    )
    return uvicorn.Server(config)


async def run_api_server(relay: PresenceRelayServer) -> None:
    """Serve the HTTP API until cancelled."""
    server = build_api_server(relay)
    logger.info(
        f"Starting relay API on {relay.config.api_host}:{relay.config.api_port}"
    )
    await server.serve()
