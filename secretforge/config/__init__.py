"""Configuration for SecretForge."""

from .settings import (
    CONFIG_FILENAME,
    LEGACY_CONFIG_FILENAME,
    ConfigError,
    ConfigManager,
    ProjectConfig,
    Settings,
    configure,
    find_config_path,
    get_settings,
)

__all__ = [
    "CONFIG_FILENAME",
    "LEGACY_CONFIG_FILENAME",
    "ConfigError",
    "ConfigManager",
    "ProjectConfig",
    "Settings",
    "configure",
    "find_config_path",
    "get_settings",
]
