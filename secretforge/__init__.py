"""SecretForge - Local encrypted secret vault."""

__version__ = "0.1.0"

from .vault import (
    AESGCMCryptoProvider,
    ConflictError,
    CryptoProvider,
    DecryptionError,
    InvalidKeyError,
    NotFoundError,
    Secret,
    SecretFilter,
    SecretStore,
    generate_key,
    open_store,
)

__all__ = [
    "__version__",
    "AESGCMCryptoProvider",
    "ConflictError",
    "CryptoProvider",
    "DecryptionError",
    "InvalidKeyError",
    "NotFoundError",
    "Secret",
    "SecretFilter",
    "SecretStore",
    "generate_key",
    "open_store",
]
