"""Core services for opencode-sessions."""

from .config import (
    CONFIG_FILENAME,
    DEFAULT_CONFIG_DIR,
    ConfigManager,
    ConfigurationError,
    SessionsConfig,
    project_config_path,
)

__all__ = [
    "ConfigManager",
    "ConfigurationError",
    "SessionsConfig",
    "DEFAULT_CONFIG_DIR",
    "CONFIG_FILENAME",
    "project_config_path",
]
