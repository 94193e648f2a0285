"""Configuration settings for SecretForge.

Two layers:
- Settings: process-wide options read from environment variables
- ProjectConfig: per-project .secretforge.yaml managed by ConfigManager
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from ..utils.logging import setup_logging
from ..vault.config import DEFAULT_DATA_DIR, DEFAULT_DB_FILENAME, VaultConfig

CONFIG_FILENAME = ".secretforge.yaml"
LEGACY_CONFIG_FILENAME = ".secretforge.json"
CONFIG_VERSION = "1.0.0"


class ConfigError(Exception):
    """Raised when a project configuration cannot be loaded or saved."""

    pass


@dataclass
class ProjectConfig:
    """Per-project settings stored in .secretforge.yaml."""

    project: str
    default_environment: str = "dev"
    database_path: Optional[str] = None
    version: str = CONFIG_VERSION

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML serialization."""
        result = asdict(self)
        if result["database_path"] is None:
            del result["database_path"]
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectConfig":
        """
        Create from dictionary.

        Accepts the camelCase keys written by older JSON configs
        (defaultEnvironment, databasePath).
        """
        project = data.get("project")
        if not project:
            raise ConfigError("Configuration is missing a project name")
        return cls(
            project=project,
            default_environment=(
                data.get("default_environment") or data.get("defaultEnvironment") or "dev"
            ),
            database_path=data.get("database_path") or data.get("databasePath"),
            version=str(data.get("version", CONFIG_VERSION)),
        )


def find_config_path(directory: Path) -> Path:
    """
    Locate the project config file in a directory.

    Prefers .secretforge.yaml and falls back to an existing
    .secretforge.json written by the earlier JavaScript tool.
    """
    config_path = directory / CONFIG_FILENAME
    legacy_path = directory / LEGACY_CONFIG_FILENAME
    if not config_path.exists() and legacy_path.exists():
        return legacy_path
    return config_path


class ConfigManager:
    """Manages the project configuration file.

    Files are read with yaml.safe_load, so JSON configs load as well.
    A config with a .json suffix is written back as JSON.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize for a configuration file.

        Args:
            config_path: Config file (default: ./.secretforge.yaml, or
                ./.secretforge.json when only that one exists)
        """
        if config_path:
            self.config_path = Path(config_path)
        else:
            self.config_path = find_config_path(Path.cwd())

    def exists(self) -> bool:
        """Check if the configuration file exists."""
        return self.config_path.exists()

    def load(self) -> ProjectConfig:
        """
        Load the configuration.

        Raises:
            ConfigError: If the file is missing or malformed
        """
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load configuration from {self.config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {self.config_path} is not a mapping")
        return ProjectConfig.from_dict(data)

    def save(self, config: ProjectConfig) -> None:
        """
        Save the configuration.

        Raises:
            ConfigError: If the file cannot be written
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                if self.config_path.suffix == ".json":
                    json.dump(config.to_dict(), f, indent=2)
                else:
                    yaml.dump(
                        config.to_dict(),
                        f,
                        default_flow_style=False,
                        sort_keys=False,
                        allow_unicode=True,
                    )
        except OSError as e:
            raise ConfigError(f"Failed to save configuration to {self.config_path}: {e}")

    def init(self, project: str, environment: str = "dev") -> ProjectConfig:
        """
        Create and save a new project configuration.

        Args:
            project: Project name
            environment: Default environment

        Returns:
            The saved ProjectConfig
        """
        config = ProjectConfig(
            project=project,
            default_environment=environment,
            database_path=str(DEFAULT_DATA_DIR / f"{project}.db"),
        )
        self.save(config)
        return config

    def get_database_path(self, config: Optional[ProjectConfig] = None) -> Path:
        """Database path for a config, falling back to the shared default."""
        if config is not None and config.database_path:
            return Path(config.database_path).expanduser()
        return DEFAULT_DATA_DIR / DEFAULT_DB_FILENAME


@dataclass
class Settings:
    """Main settings container."""

    vault: VaultConfig = field(default_factory=VaultConfig)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    config_path: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        settings = cls(vault=VaultConfig.from_env())

        if log_level := os.getenv("LOG_LEVEL"):
            settings.log_level = log_level

        if log_file := os.getenv("SECRETFORGE_LOG_FILE"):
            settings.log_file = Path(log_file)

        if config_path := os.getenv("SECRETFORGE_CONFIG"):
            settings.config_path = Path(config_path)

        return settings

    def setup_logging(self, rich_output: bool = True) -> logging.Logger:
        """Configure the secretforge logger from these settings."""
        return setup_logging(self.log_level, self.log_file, rich_output=rich_output)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def configure(settings: Optional[Settings]) -> None:
    """Set (or with None, reset) the global settings instance."""
    global _settings
    _settings = settings
