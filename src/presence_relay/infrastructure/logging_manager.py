"""
Environment-aware logging management for the Presence Relay system.

This module provides centralized logging configuration with environment-based
log levels and YAML configuration support.

Environment Log Levels:
- Development: DEBUG and above
- Staging: INFO and above
- Production: WARNING and above
"""

import logging
import logging.config
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml

# Third-party loggers that flood the output at DEBUG
NOISY_LOGGERS = (
    "websockets",
    "websockets.server",
    "websockets.client",
    "uvicorn.access",
    "asyncio",
)


class Environment(Enum):
    """Environment enumeration."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LoggingManager:
    """Centralized logging management with production controls."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize logging manager.

        Args:
            config_path: Path to YAML configuration file. If None, uses the
                logging.yaml shipped inside the package.
        """
        if config_path is None:
            config_path = Path(__file__).parent.parent / "logging.yaml"

        self.config_path = config_path
        self._config_cache: Optional[Dict[str, Any]] = None
        self._environment = self._detect_environment()

        # Components configured so far, re-levelled by apply_log_level
        self._components: Set[str] = set()
        self._level_override: Optional[str] = None

    def _detect_environment(self) -> Environment:
        """Detect current environment from environment variables."""
        env = os.getenv("ENVIRONMENT", "development").lower()

        if env in ["prod", "production"]:
            return Environment.PRODUCTION
        elif env in ["staging", "stage"]:
            return Environment.STAGING
        else:
            return Environment.DEVELOPMENT

    def _load_yaml_config(self) -> Optional[Dict[str, Any]]:
        """Load YAML logging configuration."""
        if self._config_cache is not None:
            return self._config_cache

        if not self.config_path.exists():
            return None

        try:
            with open(self.config_path, "r") as f:
                config = yaml.safe_load(f)
        except (yaml.YAMLError, IOError) as e:
            logging.getLogger(__name__).warning(
                f"Failed to load YAML logging config {self.config_path}: {e}"
            )
            return None

        self._config_cache = config
        return config

    def _get_environment_log_level(self) -> str:
        """Get appropriate log level for current environment."""
        if self._environment == Environment.PRODUCTION:
            return "WARNING"
        elif self._environment == Environment.STAGING:
            return "INFO"
        else:
            return "DEBUG"

    def _apply_environment_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Raise application logger levels outside development."""
        if self._environment == Environment.DEVELOPMENT:
            return config

        env_log_level = self._get_environment_log_level()
        if "root" in config:
            config["root"]["level"] = env_log_level

        for logger_name, logger_config in config.get("loggers", {}).items():
            if logger_name in NOISY_LOGGERS:
                continue
            logger_config["level"] = env_log_level

        return config

    def setup_logging(
        self,
        component_name: str,
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> logging.Logger:
        """
        Set up logging for a component with environment-aware configuration.

        Args:
            component_name: Name of the component
            log_level: Override log level (if None, uses environment-appropriate level)
            log_file: Log file path used by the fallback configuration

        Returns:
            Configured logger instance
        """
        if log_level is None:
            log_level = self._level_override or self._get_environment_log_level()
        self._components.add(component_name)

        config = self._load_yaml_config()
        if not config:
            return self._setup_basic_logging(component_name, log_level, log_file)

        logging.config.dictConfig(self._apply_environment_overrides(dict(config)))

        logger = logging.getLogger(component_name)
        logger.setLevel(getattr(logging, log_level.upper()))
        if self._level_override:
            self._relevel_components()
        self._suppress_noisy_loggers()
        return logger

    def _setup_basic_logging(
        self,
        component_name: str,
        log_level: str,
        log_file: Optional[str],
    ) -> logging.Logger:
        """Set up basic logging when YAML config is not available."""
        logger = logging.getLogger(component_name)
        logger.setLevel(getattr(logging, log_level.upper()))
        logger.handlers.clear()

        if self._environment == Environment.PRODUCTION:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logger.level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        self._suppress_noisy_loggers()
        return logger

    def apply_log_level(self, log_level: str) -> None:
        """
        Force one level on every component, overriding the environment default.

        Components are usually set up at import time, before configuration
        is read; this re-levels them and every component set up afterwards.

        Raises:
            ValueError: If ``log_level`` is not a standard level name
        """
        level = log_level.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {log_level}")

        self._level_override = level
        self._relevel_components()

    def _relevel_components(self) -> None:
        level = getattr(logging, self._level_override)
        for name in self._components:
            logging.getLogger(name).setLevel(level)

    def _suppress_noisy_loggers(self):
        """Suppress noisy third-party library loggers."""
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    def get_environment(self) -> Environment:
        """Get current environment."""
        return self._environment

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self._environment == Environment.PRODUCTION


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up logging for a component (convenience function)."""
    return _logging_manager.setup_logging(component_name, log_level, log_file)


def get_logger(component_name: str) -> logging.Logger:
    """Get a logger for a component."""
    return logging.getLogger(component_name)


def apply_log_level(log_level: str) -> None:
    """Force ``log_level`` on every relay component (convenience function)."""
    _logging_manager.apply_log_level(log_level)


def is_production() -> bool:
    """Check if running in production mode."""
    return _logging_manager.is_production()


def get_environment() -> Environment:
    """Get current environment."""
    return _logging_manager.get_environment()
