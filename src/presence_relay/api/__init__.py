"""
HTTP API for the presence relay.
"""

from .app import create_app
from .server import build_api_server, run_api_server

__all__ = [
    "create_app",
    "build_api_server",
    "run_api_server",
]
