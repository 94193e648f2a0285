"""Core cryptographic primitives for secret encryption.

Uses the cryptography library for:
- AES-256-GCM authenticated encryption of secret values
- A versioned, self-describing envelope stored in place of each value

Envelope format (base64 of compact JSON):
    {"version": 1, "iv": <b64 nonce>, "authTag": <b64 tag>, "data": <b64 ciphertext>}
"""

import base64
import binascii
import json
import os
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import (
    DecryptionError,
    EncryptionError,
    InvalidKeyError,
    UnsupportedVersionError,
)

KEY_SIZE = 32  # 256 bits for AES-256
NONCE_SIZE = 12  # 96 bits for AES-GCM
TAG_SIZE = 16  # 128-bit authentication tag

ENVELOPE_VERSION_AESGCM = 1
CURRENT_VERSION = ENVELOPE_VERSION_AESGCM

KeyMaterial = Union[str, bytes]


def generate_key() -> str:
    """
    Generate a new random encryption key.

    Returns:
        Base64-encoded 32-byte key, suitable for SECRETFORGE_ENCRYPTION_KEY
    """
    return base64.b64encode(secrets.token_bytes(KEY_SIZE)).decode("ascii")


def decode_key(key: KeyMaterial) -> bytes:
    """
    Validate and decode key material.

    Args:
        key: Base64 string of a 32-byte key, or the raw 32 bytes

    Returns:
        Raw 32-byte key

    Raises:
        InvalidKeyError: If the key is missing, not base64, or the wrong length
    """
    if not key:
        raise InvalidKeyError(
            "Encryption key not provided. Set SECRETFORGE_ENCRYPTION_KEY "
            "or pass a key explicitly."
        )

    if isinstance(key, (bytes, bytearray)):
        raw = bytes(key)
    else:
        try:
            raw = base64.b64decode(key.strip(), validate=True)
        except (binascii.Error, ValueError):
            raise InvalidKeyError("Encryption key must be base64 encoded")

    if len(raw) != KEY_SIZE:
        raise InvalidKeyError(
            f"Encryption key must be {KEY_SIZE} bytes (base64 encoded), got {len(raw)}"
        )
    return raw


def _b64decode_field(payload: dict, field_name: str) -> bytes:
    value = payload.get(field_name)
    if not isinstance(value, str):
        raise DecryptionError(f"Malformed envelope: missing '{field_name}'")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise DecryptionError(f"Malformed envelope: '{field_name}' is not base64")


@dataclass(frozen=True)
class Envelope:
    """Encrypted package stored in place of a plaintext value."""

    version: int
    nonce: bytes
    tag: bytes
    data: bytes

    def to_token(self) -> str:
        """Serialize to the base64 string stored in value_encrypted."""
        payload = {
            "version": self.version,
            "iv": base64.b64encode(self.nonce).decode("ascii"),
            "authTag": base64.b64encode(self.tag).decode("ascii"),
            "data": base64.b64encode(self.data).decode("ascii"),
        }
        raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    @classmethod
    def from_token(cls, token: str) -> "Envelope":
        """
        Parse a serialized envelope.

        Envelopes without a version field predate versioning and use the
        version 1 layout.

        Raises:
            DecryptionError: If the token is not a well-formed envelope
            UnsupportedVersionError: If the version field is not an integer
        """
        if not isinstance(token, str) or not token:
            raise DecryptionError("Malformed envelope: empty or not a string")

        try:
            payload = json.loads(base64.b64decode(token, validate=True).decode("utf-8"))
        except (binascii.Error, ValueError):
            raise DecryptionError("Malformed envelope: not base64-encoded JSON")

        if not isinstance(payload, dict):
            raise DecryptionError("Malformed envelope: expected a JSON object")

        version = payload.get("version", ENVELOPE_VERSION_AESGCM)
        if isinstance(version, bool) or not isinstance(version, int):
            raise UnsupportedVersionError(version)

        return cls(
            version=version,
            nonce=_b64decode_field(payload, "iv"),
            tag=_b64decode_field(payload, "authTag"),
            data=_b64decode_field(payload, "data"),
        )


class CryptoProvider(ABC):
    """Turns plaintext strings into authenticated envelopes and back."""

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext and return a serialized envelope."""

    @abstractmethod
    def decrypt(self, envelope: str) -> str:
        """Decrypt a serialized envelope, raising DecryptionError on failure."""


class AESGCMCryptoProvider(CryptoProvider):
    """
    AES-256-GCM crypto provider bound to a single key.

    Each encrypt call draws a fresh random 96-bit nonce, so encrypting the
    same plaintext twice yields different envelopes. Decryption verifies
    the GCM tag before any plaintext is returned.
    """

    def __init__(self, key: KeyMaterial):
        """
        Initialize with an explicit key.

        Args:
            key: Base64-encoded 32-byte key (or the raw 32 bytes)

        Raises:
            InvalidKeyError: If the key is missing or not 32 bytes
        """
        self._aesgcm = AESGCM(decode_key(key))
        self._decryptors: dict[int, Callable[[Envelope], bytes]] = {
            ENVELOPE_VERSION_AESGCM: self._decrypt_v1,
        }

    @property
    def version(self) -> int:
        """Envelope version produced by encrypt()."""
        return CURRENT_VERSION

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a plaintext value.

        Args:
            plaintext: Value to encrypt (any Unicode string, including "")

        Returns:
            Base64-encoded envelope
        """
        if not isinstance(plaintext, str):
            raise TypeError(f"plaintext must be str, not {type(plaintext).__name__}")

        try:
            nonce = os.urandom(NONCE_SIZE)
            sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        except UnicodeEncodeError as e:
            raise EncryptionError(f"AES-GCM encryption failed: {e}")

        # AESGCM appends the tag to the ciphertext
        envelope = Envelope(
            version=CURRENT_VERSION,
            nonce=nonce,
            tag=sealed[-TAG_SIZE:],
            data=sealed[:-TAG_SIZE],
        )
        return envelope.to_token()

    def decrypt(self, envelope: str) -> str:
        """
        Decrypt an envelope.

        Args:
            envelope: Base64-encoded envelope from encrypt()

        Returns:
            Decrypted plaintext

        Raises:
            DecryptionError: Malformed envelope, wrong key, or tampered data
            UnsupportedVersionError: Unknown envelope version
        """
        parsed = Envelope.from_token(envelope)

        decryptor = self._decryptors.get(parsed.version)
        if decryptor is None:
            raise UnsupportedVersionError(parsed.version)

        plaintext = decryptor(parsed)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionError("Decrypted value is not valid UTF-8")

    def _decrypt_v1(self, envelope: Envelope) -> bytes:
        """Decrypt a version 1 (AES-256-GCM, detached tag) envelope."""
        if len(envelope.nonce) != NONCE_SIZE:
            raise DecryptionError(
                f"Malformed envelope: nonce must be {NONCE_SIZE} bytes, got {len(envelope.nonce)}"
            )
        if len(envelope.tag) != TAG_SIZE:
            raise DecryptionError(
                f"Malformed envelope: tag must be {TAG_SIZE} bytes, got {len(envelope.tag)}"
            )

        try:
            return self._aesgcm.decrypt(envelope.nonce, envelope.data + envelope.tag, None)
        except InvalidTag:
            raise DecryptionError("Invalid ciphertext or wrong key")
