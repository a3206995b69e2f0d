"""
Cryptographic primitives for secrets encryption.

This module provides:
- SecureKey: Key wrapper with redacted repr and best-effort zeroization
- EncryptedData: Salt, nonce and ciphertext of a single AEAD message
- AesGcmCipher: AES-256-GCM encryption/decryption under a derived key
- generate_random_bytes: CSPRNG helper used for data key generation

Secrets handed to the cipher are not used as AES keys directly. Data keys are
16 bytes and the configured static secret is an arbitrary string, so every
message derives its own 256-bit key with HKDF-SHA256 over a random salt.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .errors import CryptoError, RandomSourceError

# Cryptographic constants
AES_256_KEY_SIZE: int = 32  # 256 bits
SALT_SIZE: int = 8
NONCE_SIZE: int = 12  # 96 bits (standard for AES-GCM)
TAG_SIZE: int = 16  # 128 bits (authentication tag)
KDF_INFO: bytes = b"envelope-secrets-aes-256-gcm"
DATA_KEY_SIZE: int = 16

_DECRYPTION_FAILED = "Decryption failed"


class SecureKey:
    """
    Key wrapper with memory cleanup on deletion.

    Uses bytearray internally for mutable zeroing in __del__.
    Python's garbage collector doesn't guarantee immediate cleanup,
    so this is best-effort zeroization.
    """

    __slots__ = ("_bytes",)

    def __init__(self, key_bytes: bytes | bytearray) -> None:
        if not isinstance(key_bytes, (bytes, bytearray)):
            raise CryptoError("Key must be bytes or bytearray")
        self._bytes = bytearray(key_bytes)

    @classmethod
    def generate(cls, size: int = DATA_KEY_SIZE) -> SecureKey:
        """Generate a random key of ``size`` bytes."""
        return cls(generate_random_bytes(size))

    def as_bytes(self) -> bytes:
        """Return key as immutable bytes."""
        return bytes(self._bytes)

    def __len__(self) -> int:
        return len(self._bytes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecureKey):
            return NotImplemented
        return secrets.compare_digest(bytes(self._bytes), bytes(other._bytes))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        """Redacted representation to prevent accidental key disclosure."""
        return "SecureKey([REDACTED])"

    def __del__(self) -> None:
        """Zero memory on deletion (best-effort)."""
        if hasattr(self, "_bytes"):
            for i in range(len(self._bytes)):
                self._bytes[i] = 0


@dataclass
class EncryptedData:
    """
    A single AEAD message.

    The ciphertext includes the 16-byte authentication tag appended by AESGCM.
    """

    salt: bytes  # 8 bytes
    nonce: bytes  # 12 bytes
    ciphertext: bytes  # Ciphertext + 16-byte auth tag

    def to_blob(self) -> bytes:
        """
        Serialize as salt || nonce || ciphertext || tag.

        An empty plaintext yields the minimum size of 8 + 12 + 16 = 36 bytes.
        """
        return self.salt + self.nonce + self.ciphertext

    @classmethod
    def from_blob(cls, blob: bytes) -> EncryptedData:
        """
        Parse salt || nonce || ciphertext || tag.

        Raises:
            CryptoError: If blob is too small
        """
        if len(blob) < SALT_SIZE + NONCE_SIZE + TAG_SIZE:
            raise CryptoError(_DECRYPTION_FAILED)
        return cls(
            salt=blob[:SALT_SIZE],
            nonce=blob[SALT_SIZE:SALT_SIZE + NONCE_SIZE],
            ciphertext=blob[SALT_SIZE + NONCE_SIZE:],
        )


def derive_key(secret: bytes, salt: bytes) -> bytes:
    """Derive a 32-byte AES key from ``secret`` with HKDF-SHA256."""
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=AES_256_KEY_SIZE,
        salt=salt,
        info=KDF_INFO,
    )
    return hkdf.derive(secret)


class AesGcmCipher:
    """
    AES-256-GCM authenticated encryption keyed by an arbitrary-length secret.

    This is the payload cipher used by the secrets service for both data keys
    and the static configured secret.
    """

    @staticmethod
    def encrypt(secret: bytes, plaintext: bytes) -> bytes:
        """
        Encrypt plaintext under ``secret``.

        Args:
            secret: Data key or static secret bytes (any non-empty length)
            plaintext: Data to encrypt

        Returns:
            salt || nonce || ciphertext || tag

        Raises:
            CryptoError: If the secret is empty or encryption fails
        """
        if not secret:
            raise CryptoError("Encryption secret must not be empty")

        salt = generate_random_bytes(SALT_SIZE)
        nonce = generate_random_bytes(NONCE_SIZE)
        aesgcm = AESGCM(derive_key(secret, salt))

        try:
            ciphertext = aesgcm.encrypt(nonce, plaintext, None)
        except Exception as e:
            raise CryptoError(f"Encryption error: {e}") from e

        return EncryptedData(salt=salt, nonce=nonce, ciphertext=ciphertext).to_blob()

    @staticmethod
    def decrypt(secret: bytes, blob: bytes) -> bytes:
        """
        Decrypt a blob produced by ``encrypt``.

        Every failure (truncated blob, wrong secret, modified bytes) raises the
        same error after the same amount of key derivation work.

        Raises:
            CryptoError: If decryption or authentication fails
        """
        try:
            encrypted = EncryptedData.from_blob(blob)
        except CryptoError:
            encrypted = None

        salt = encrypted.salt if encrypted is not None else bytes(SALT_SIZE)
        key = derive_key(secret or b"\x00", salt)

        if encrypted is None or not secret:
            raise CryptoError(_DECRYPTION_FAILED)

        try:
            return AESGCM(key).decrypt(encrypted.nonce, encrypted.ciphertext, None)
        except (InvalidTag, ValueError):
            # Generic error to prevent oracle attacks
            raise CryptoError(_DECRYPTION_FAILED) from None


def generate_random_bytes(length: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Raises:
        RandomSourceError: If the operating system cannot supply randomness
    """
    try:
        return secrets.token_bytes(length)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceError(f"Random source failure: {e}") from e
