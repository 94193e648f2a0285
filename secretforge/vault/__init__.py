"""Encrypted secret vault for SecretForge.

Stores named credentials scoped by project and environment. Every value
is sealed with AES-256-GCM before it reaches disk and is only recovered
through an explicit decrypt call.

Usage:
    from secretforge.vault import AESGCMCryptoProvider, SecretStore, generate_key

    key = generate_key()
    with SecretStore("secrets.db", AESGCMCryptoProvider(key)) as store:
        secret = store.add_secret("DB_PASS", "s3cr3t", "billing", "prod")
        value = store.decrypt_secret(secret)
"""

# Exceptions
from .exceptions import (
    ConflictError,
    CorruptRecordError,
    DecryptionError,
    EncryptionError,
    InvalidKeyError,
    NotFoundError,
    StaleSecretError,
    StoreClosedError,
    UnsupportedVersionError,
    VaultError,
)

# Configuration
from .config import (
    VaultConfig,
    get_vault_config,
    set_vault_config,
)

# Cryptography
from .crypto import (
    AESGCMCryptoProvider,
    CryptoProvider,
    Envelope,
    decode_key,
    generate_key,
)

# Models
from .models import (
    Secret,
    SecretFilter,
)

# Storage
from .store import (
    SecretStore,
    open_store,
)

# Rotation
from .rotation import (
    reencrypt_value,
    rotate_store_key,
)

__all__ = [
    # Exceptions
    "VaultError",
    "InvalidKeyError",
    "EncryptionError",
    "DecryptionError",
    "UnsupportedVersionError",
    "ConflictError",
    "StaleSecretError",
    "NotFoundError",
    "StoreClosedError",
    "CorruptRecordError",
    # Configuration
    "VaultConfig",
    "get_vault_config",
    "set_vault_config",
    # Cryptography
    "CryptoProvider",
    "AESGCMCryptoProvider",
    "Envelope",
    "decode_key",
    "generate_key",
    # Models
    "Secret",
    "SecretFilter",
    # Storage
    "SecretStore",
    "open_store",
    # Rotation
    "reencrypt_value",
    "rotate_store_key",
]
