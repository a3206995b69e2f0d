"""
Data key providers.

This module provides:
- Provider: Abstract interface for components that wrap/unwrap data keys
- StaticSecretProvider: Built-in provider backed by the configured secret
- ProviderRegistry: Closed mapping of provider id -> Provider

Providers encrypt data keys, never user payloads. Each stored data key records
the id of the provider that wrapped it, so the id a provider is registered
under must stay stable for as long as such records exist.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List

from .crypto import AesGcmCipher
from .envelope import decode_envelope, encode_envelope
from .errors import ConfigError, CryptoError, ProviderNotFoundError

logger = logging.getLogger(__name__)

STATIC_SECRET_PROVIDER_ID: str = ""


class Provider(ABC):
    """
    Abstract data key provider.

    Methods are async so back ends may call out to a KMS or HSM.
    """

    @abstractmethod
    async def encrypt(self, blob: bytes) -> bytes:
        """Wrap a plaintext data key."""
        ...

    @abstractmethod
    async def decrypt(self, blob: bytes) -> bytes:
        """Unwrap an encrypted data key."""
        ...


class StaticSecretProvider(Provider):
    """
    Provider that encrypts data keys directly under the static secret.

    Wrapped keys use the empty-name envelope (``##`` + ciphertext), the same
    bytes ``SecretsService.encrypt`` produces for the empty key name. Legacy
    bodies without an envelope are accepted on decrypt.
    """

    def __init__(self, secret: bytes) -> None:
        if not secret:
            raise ConfigError("Static secret must not be empty")
        self._secret = bytes(secret)

    async def encrypt(self, blob: bytes) -> bytes:
        return encode_envelope(STATIC_SECRET_PROVIDER_ID, AesGcmCipher.encrypt(self._secret, blob))

    async def decrypt(self, blob: bytes) -> bytes:
        envelope = decode_envelope(blob)
        if envelope.key_name:
            # Wrapped by a data key, not by the static secret
            raise CryptoError("Decryption failed")
        return AesGcmCipher.decrypt(self._secret, envelope.ciphertext)

    def __repr__(self) -> str:
        return "StaticSecretProvider([REDACTED])"


class ProviderRegistry:
    """
    Provider id -> Provider.

    Populated once at startup. Lookups never load providers dynamically.
    """

    def __init__(self) -> None:
        self._providers: Dict[str, Provider] = {}

    @classmethod
    def with_static_secret(cls, secret: bytes) -> ProviderRegistry:
        """Create a registry holding the built-in static secret provider."""
        registry = cls()
        registry.register(STATIC_SECRET_PROVIDER_ID, StaticSecretProvider(secret))
        return registry

    def register(self, provider_id: str, provider: Provider) -> None:
        """
        Register ``provider`` under ``provider_id``.

        Raises:
            ConfigError: If the id is taken or provider is not a Provider
        """
        if not isinstance(provider, Provider):
            raise ConfigError(f"{provider!r} does not implement Provider")
        if provider_id in self._providers:
            raise ConfigError(f"Provider {provider_id!r} is already registered")
        self._providers[provider_id] = provider
        logger.debug("Registered secrets provider %r", provider_id)

    def resolve(self, provider_id: str) -> Provider:
        """
        Return the provider registered under ``provider_id``.

        Raises:
            ProviderNotFoundError: If nothing is registered under the id
        """
        try:
            return self._providers[provider_id]
        except KeyError:
            raise ProviderNotFoundError(provider_id) from None

    def ids(self) -> List[str]:
        return sorted(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    def __len__(self) -> int:
        return len(self._providers)
