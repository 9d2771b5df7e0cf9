"""
Start the presence relay and its HTTP API in one event loop.

Usage:
    python -m presence_relay
"""

import asyncio
import sys

from presence_relay.api import run_api_server
from presence_relay.config import RelayConfigManager
from presence_relay.infrastructure import (
    ConfigurationError,
    apply_log_level,
    setup_logging,
)
from presence_relay.websockets.server import PresenceRelayServer

logger = setup_logging(component_name="presence_relay")


async def run() -> int:
    """Run until interrupted; returns the process exit code."""
    try:
        config = RelayConfigManager().get_config()
    except ConfigurationError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 2

    if config.log_level:
        apply_log_level(config.log_level)

    relay = PresenceRelayServer(config)
    if not await relay.start():
        return 1

    try:
        await run_api_server(relay)
    finally:
        await relay.stop()
    return 0


def main() -> None:
    """Console entry point."""
    try:
        sys.exit(asyncio.run(run()))
    except KeyboardInterrupt:
        logger.info("Presence relay shutdown requested")


if __name__ == "__main__":
    main()
