"""
Configuration management for the Presence Relay.

This module loads relay settings from the environment (optionally seeded
from a .env file) into a single dataclass that is handed to every
component at start-up.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from presence_relay.core.types import (
    DEFAULT_API_PORT,
    DEFAULT_RELAY_PORT,
    SPAWN_CENTER_X,
    SPAWN_CENTER_Y,
    SPAWN_SPREAD,
)
from presence_relay.infrastructure.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RelayConfig:
    """Runtime configuration for the relay and its HTTP API."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_RELAY_PORT
    api_host: str = "0.0.0.0"
    api_port: int = DEFAULT_API_PORT

    ping_interval: int = 30
    max_connections: int = 1000
    max_message_size: int = 64 * 1024

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    # Overrides the ENVIRONMENT-based level of every component when set
    log_level: Optional[str] = None

    # Spawn area shared with clients so first renders do not snap
    spawn_center_x: float = SPAWN_CENTER_X
    spawn_center_y: float = SPAWN_CENTER_Y
    spawn_spread: float = SPAWN_SPREAD


class RelayConfigManager:
    """Builds a RelayConfig from environment variables."""

    def __init__(self, env_file_path: Optional[str] = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to environment file, or None to skip loading one
        """
        self.env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self):
        """Load environment variables from file."""
        if not self.env_file_path:
            return
        if os.path.exists(self.env_file_path):
            load_dotenv(dotenv_path=self.env_file_path)
            logger.info(f"Loaded environment from {self.env_file_path}")
        else:
            logger.debug(f"Environment file {self.env_file_path} not found")

    def _get_optional_env(self, key: str, default: str) -> str:
        return os.getenv(key, default)

    def _get_int_env(self, key: str, default: int) -> int:
        raw = os.getenv(key)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {raw!r}")

    def _get_float_env(self, key: str, default: float) -> float:
        raw = os.getenv(key)
        if raw is None or raw == "":
            return default
        try:
            return float(raw)
        except ValueError:
            raise ConfigurationError(f"{key} must be a number, got {raw!r}")

    def _get_cors_origins(self) -> List[str]:
        """Comma-separated origins; '*' allows everything."""
        raw = self._get_optional_env("CORS_ORIGINS", "*")
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        return origins or ["*"]

    def _get_log_level(self) -> Optional[str]:
        raw = os.getenv("LOG_LEVEL")
        if not raw:
            return None
        level = raw.strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {raw!r}"
            )
        return level

    def get_config(self) -> RelayConfig:
        """
        Get the relay configuration.

        Returns:
            RelayConfig: Relay configuration

        Raises:
            ConfigurationError: If a numeric setting cannot be parsed
        """
        config = RelayConfig(
            host=self._get_optional_env("RELAY_HOST", "0.0.0.0"),
            port=self._get_int_env("RELAY_PORT", DEFAULT_RELAY_PORT),
            api_host=self._get_optional_env("API_HOST", "0.0.0.0"),
            api_port=self._get_int_env("API_PORT", DEFAULT_API_PORT),
            ping_interval=self._get_int_env("PING_INTERVAL", 30),
            max_connections=self._get_int_env("MAX_CONNECTIONS", 1000),
            max_message_size=self._get_int_env("MAX_MESSAGE_SIZE", 64 * 1024),
            cors_origins=self._get_cors_origins(),
            log_level=self._get_log_level(),
            spawn_center_x=self._get_float_env("SPAWN_CENTER_X", SPAWN_CENTER_X),
            spawn_center_y=self._get_float_env("SPAWN_CENTER_Y", SPAWN_CENTER_Y),
            spawn_spread=self._get_float_env("SPAWN_SPREAD", SPAWN_SPREAD),
        )

        if config.max_connections < 1:
            raise ConfigurationError("MAX_CONNECTIONS must be at least 1")
        if config.spawn_spread < 0:
            raise ConfigurationError("SPAWN_SPREAD cannot be negative")

        logger.info("Configuration loaded successfully")
        return config
