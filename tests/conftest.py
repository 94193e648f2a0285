"""Shared pytest fixtures for SecretForge tests."""

from pathlib import Path
from typing import Generator

import pytest


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep global vault config and settings from leaking between tests."""
    from secretforge.config import configure
    from secretforge.vault import set_vault_config

    set_vault_config(None)
    configure(None)
    yield
    set_vault_config(None)
    configure(None)


@pytest.fixture
def encryption_key() -> str:
    """A freshly generated base64 encryption key."""
    from secretforge.vault import generate_key

    return generate_key()


@pytest.fixture
def other_key() -> str:
    """A second key, different from encryption_key."""
    from secretforge.vault import generate_key

    return generate_key()


@pytest.fixture
def crypto_provider(encryption_key: str):
    """AES-GCM provider bound to encryption_key."""
    from secretforge.vault import AESGCMCryptoProvider

    return AESGCMCryptoProvider(encryption_key)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path for a test database inside a clean temporary directory."""
    return tmp_path / "secrets.db"


@pytest.fixture
def secret_store(db_path: Path, crypto_provider) -> Generator:
    """An open SecretStore, closed at teardown."""
    from secretforge.vault import SecretStore

    store = SecretStore(db_path, crypto_provider)
    yield store
    store.close()


@pytest.fixture
def populated_store(secret_store):
    """SecretStore with three secrets across projects, environments and tags.

    A: proj1/dev  tags=[x]
    B: proj1/prod tags=[x, y]
    C: proj2/dev  tags=[z]
    """
    secret_store.add_secret("A", "value-a", "proj1", "dev", tags=["x"])
    secret_store.add_secret("B", "value-b", "proj1", "prod", tags=["x", "y"])
    secret_store.add_secret("C", "value-c", "proj2", "dev", tags=["z"])
    return secret_store


@pytest.fixture
def vault_env(monkeypatch, tmp_path: Path, encryption_key: str) -> Path:
    """Point the SECRETFORGE_* environment variables at a temp database."""
    db_file = tmp_path / "env" / "secrets.db"
    monkeypatch.setenv("SECRETFORGE_ENCRYPTION_KEY", encryption_key)
    monkeypatch.setenv("SECRETFORGE_DB_PATH", str(db_file))
    return db_file
