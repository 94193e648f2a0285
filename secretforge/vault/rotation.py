"""Key rotation for the secret store.

Rotating the master key decrypts every stored value with the current key
and re-encrypts it with the new one, in place. The schema does not change.
"""

from typing import Callable, Optional

from ..utils.logging import ProgressLogger, get_logger
from .crypto import AESGCMCryptoProvider, CryptoProvider, KeyMaterial
from .store import SecretStore

logger = get_logger(__name__)


def reencrypt_value(envelope: str, old: CryptoProvider, new: CryptoProvider) -> str:
    """
    Re-encrypt a single envelope under a new key.

    Args:
        envelope: Envelope produced by the old provider
        old: Provider holding the current key
        new: Provider holding the new key

    Returns:
        Envelope produced by the new provider

    Raises:
        DecryptionError: If the envelope does not decrypt with the old key
    """
    return new.encrypt(old.decrypt(envelope))


def rotate_store_key(
    store: SecretStore,
    new_key: KeyMaterial,
    show_progress: bool = False,
    progress_callback: Optional[Callable[[str, int, int], None]] = None,
) -> dict:
    """
    Re-encrypt every secret in a store under a new key.

    The rotation is all-or-nothing: if any value fails to decrypt with the
    store's current key, the transaction rolls back and the store keeps
    its current key.

    Args:
        store: Open store bound to the current key
        new_key: Base64-encoded 32-byte replacement key
        show_progress: Whether to print progress
        progress_callback: Optional callback(secret_id, current, total)

    Returns:
        Dict with rotation statistics

    Raises:
        InvalidKeyError: If new_key is invalid
        DecryptionError: If a stored value cannot be decrypted
    """
    new_crypto = AESGCMCryptoProvider(new_key)
    progress = ProgressLogger(0, "Key rotation") if show_progress else None

    def report_progress(secret_id: str, current: int, total: int) -> None:
        if progress:
            progress.total = total
            progress.update(secret_id)
        if progress_callback:
            progress_callback(secret_id, current, total)

    logger.info(f"Starting key rotation for {store.db_path}")

    try:
        rotated = store.reencrypt_all(new_crypto, on_progress=report_progress)
    except Exception as e:
        if progress:
            progress.error(f"{e}; no secrets were changed")
        raise

    if progress:
        progress.complete()

    stats = {"total": rotated, "rotated": rotated}
    logger.info(f"Key rotation complete: {stats}")
    return stats
