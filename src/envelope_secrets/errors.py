"""
Exception classes for secrets encryption operations.

Every failure surfaced by ``SecretsService.encrypt``, ``decrypt`` and
``initialize`` derives from ``SecretsError``. None of them are retried by the
service; retry policy belongs to the caller.
"""

from __future__ import annotations


class SecretsError(Exception):
    """Base exception for all secrets operations."""

    pass


class MalformedEnvelopeError(SecretsError):
    """Enveloped blob has no closing delimiter or an undecodable key name."""

    pass


class DataKeyNotFoundError(SecretsError):
    """Data key not found in storage."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Data key not found: {name!r}")
        self.name = name


class ProviderNotFoundError(SecretsError):
    """Data key references a provider id that was never registered."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Could not find encryption provider {provider_id!r}")
        self.provider_id = provider_id


class CryptoError(SecretsError):
    """Cryptographic operation failed (encryption, decryption, authentication)."""

    pass


class RandomSourceError(CryptoError):
    """The operating system random source could not produce key material."""

    pass


class StorageError(SecretsError):
    """Storage backend error (database, in-memory, etc.)."""

    pass


class StoreTimeoutError(StorageError):
    """Storage call did not complete before its deadline."""

    pass


class DataKeyExistsError(StorageError):
    """A data key with the same name is already stored."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Data key already exists: {name!r}")
        self.name = name


class ConfigError(SecretsError):
    """Configuration error."""

    pass


class ServiceNotReadyError(SecretsError):
    """Secrets service used before ``initialize()`` completed."""

    pass
