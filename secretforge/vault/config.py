"""Vault configuration for the SecretForge secret store."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config.settings import ProjectConfig

DEFAULT_DATA_DIR = Path.home() / ".secretforge"
DEFAULT_DB_FILENAME = "secrets.db"


@dataclass
class VaultConfig:
    """Key material and storage location for a secret store."""

    encryption_key: Optional[str] = None
    db_path: Path = field(default_factory=lambda: DEFAULT_DATA_DIR / DEFAULT_DB_FILENAME)

    # Seconds SQLite waits on a locked database before failing
    busy_timeout_seconds: float = 5.0

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            SECRETFORGE_ENCRYPTION_KEY: Base64-encoded 32-byte key
            SECRETFORGE_DB_PATH: Path to the SQLite database file
            SECRETFORGE_BUSY_TIMEOUT: Lock wait in seconds (default: 5)
        """
        config = cls()

        if key := os.getenv("SECRETFORGE_ENCRYPTION_KEY"):
            config.encryption_key = key

        if db_path := os.getenv("SECRETFORGE_DB_PATH"):
            config.db_path = Path(db_path).expanduser()

        if timeout := os.getenv("SECRETFORGE_BUSY_TIMEOUT"):
            config.busy_timeout_seconds = float(timeout)

        return config

    @classmethod
    def from_project(
        cls,
        project_config: "ProjectConfig",
        encryption_key: Optional[str] = None,
    ) -> "VaultConfig":
        """
        Build a vault configuration for a project config file.

        Args:
            project_config: Loaded .secretforge.yaml settings
            encryption_key: Key to use (default: SECRETFORGE_ENCRYPTION_KEY)
        """
        config = cls.from_env()
        if encryption_key:
            config.encryption_key = encryption_key
        if project_config.database_path:
            config.db_path = Path(project_config.database_path).expanduser()
        return config


# Global configuration instance
_config: VaultConfig | None = None


def get_vault_config() -> VaultConfig:
    """Get the global vault configuration."""
    global _config
    if _config is None:
        _config = VaultConfig.from_env()
    return _config


def set_vault_config(config: VaultConfig | None) -> None:
    """Set (or with None, reset) the global vault configuration."""
    global _config
    _config = config
