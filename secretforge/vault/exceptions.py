"""Vault exceptions for the SecretForge secret store."""


class VaultError(Exception):
    """Base exception for vault operations."""

    pass


class InvalidKeyError(VaultError):
    """Raised when encryption key material is missing or the wrong length."""

    def __init__(self, message: str = "Encryption key is missing or invalid."):
        super().__init__(message)


class EncryptionError(VaultError):
    """Raised when encryption fails."""

    def __init__(self, message: str = "Failed to encrypt value."):
        super().__init__(message)


class DecryptionError(VaultError):
    """Raised when an envelope cannot be decrypted.

    Covers malformed envelopes, authentication tag failures (wrong key or
    tampered data) and unsupported scheme versions.
    """

    def __init__(self, message: str = "Wrong key or corrupted data."):
        super().__init__(message)


class UnsupportedVersionError(DecryptionError):
    """Raised when an envelope declares an unknown encryption scheme."""

    def __init__(self, version: object = None):
        self.version = version
        super().__init__(f"Unsupported encryption version: {version}")


class ConflictError(VaultError):
    """Raised when a secret with the same name/project/environment exists."""

    def __init__(self, message: str = "Secret already exists."):
        super().__init__(message)


class StaleSecretError(ConflictError):
    """Raised when a secret changed since the caller last read it."""

    def __init__(self, secret_id: str = ""):
        self.secret_id = secret_id
        message = (
            f"Secret {secret_id} was modified concurrently."
            if secret_id
            else "Secret was modified concurrently."
        )
        super().__init__(message)


class NotFoundError(VaultError):
    """Raised when a referenced secret does not exist."""

    def __init__(self, secret_id: str = ""):
        self.secret_id = secret_id
        message = f"Secret not found: {secret_id}" if secret_id else "Secret not found."
        super().__init__(message)


class StoreClosedError(VaultError):
    """Raised when using a secret store after it was closed."""

    def __init__(self, message: str = "Secret store is closed."):
        super().__init__(message)


class CorruptRecordError(VaultError):
    """Raised when a stored secret row cannot be deserialized."""

    def __init__(self, message: str = "Stored secret record is corrupted."):
        super().__init__(message)
