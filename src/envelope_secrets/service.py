"""
Envelope encryption secrets service.

Key hierarchy:
- Static secret (configuration) -> wraps data keys via the "" provider
- Provider -> wraps data keys persisted in the DataKeyStore
- Data key -> encrypts caller payloads

Resolution of a data key name:
1. "" resolves to the static secret directly (no store, cache or provider)
2. Cache hit returns immediately
3. Otherwise fetch the record (1s deadline), resolve its provider, unwrap,
   cache for the TTL (15 minutes by default)

Ciphertexts are self-describing (see ``envelope``), so changing the default
encryption key never breaks blobs produced under an older one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .cache import DataKeyCache
from .config import SecretsSettings
from .crypto import AesGcmCipher, DATA_KEY_SIZE, SecureKey
from .envelope import decode_envelope, encode_envelope
from .errors import (
    ConfigError,
    DataKeyExistsError,
    DataKeyNotFoundError,
    ServiceNotReadyError,
    StoreTimeoutError,
)
from .providers import STATIC_SECRET_PROVIDER_ID, Provider, ProviderRegistry
from .storage import DataKey, DataKeyStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SecretsService:
    """
    Encrypts and decrypts arbitrary payloads on behalf of other components.

    The service starts uninitialized; ``initialize()`` bootstraps the root
    data key and is the only transition to ready. ``encrypt`` and ``decrypt``
    raise ServiceNotReadyError until then.
    """

    def __init__(
        self,
        store: DataKeyStore,
        settings: SecretsSettings,
        registry: Optional[ProviderRegistry] = None,
        cache: Optional[DataKeyCache] = None,
    ) -> None:
        """
        Initialize service with storage backend.

        Args:
            store: Data key store shared with other processes
            settings: Secret, default key and deadline configuration
            registry: Providers; defaults to just the static secret provider
            cache: Data key cache; defaults to one using the settings TTL
        """
        self._store = store
        self._settings = settings
        self._static_secret = settings.secret_key_bytes
        if registry is None:
            registry = ProviderRegistry.with_static_secret(self._static_secret)
        if cache is None:
            cache = DataKeyCache(ttl=settings.data_key_cache_ttl)
        self._registry = registry
        self._cache = cache
        self._ready = False

    @classmethod
    async def new(
        cls,
        store: DataKeyStore,
        settings: SecretsSettings,
        registry: Optional[ProviderRegistry] = None,
    ) -> SecretsService:
        """Create and initialize a service (async factory method)."""
        service = cls(store, settings, registry=registry)
        await service.initialize()
        return service

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def default_encryption_key(self) -> str:
        return self._settings.default_encryption_key

    @property
    def cache(self) -> DataKeyCache:
        return self._cache

    def register_provider(self, provider_id: str, provider: Provider) -> None:
        """
        Register a data key provider. Only allowed before ``initialize()``.

        Raises:
            ConfigError: If the service is already ready or the id is taken
        """
        if self._ready:
            raise ConfigError("Providers must be registered before initialize()")
        self._registry.register(provider_id, provider)

    # -------------------------------------------------------------------------
    # Bootstrap
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Ensure the root data key exists, then mark the service ready.

        Safe to call on every start: an existing root key is left untouched.

        Raises:
            StoreTimeoutError: If bootstrap exceeds its deadline
            SecretsError: Any other store, random source or cipher failure
        """
        await self._with_deadline(
            self._ensure_root_key(),
            self._settings.bootstrap_timeout,
            "root data key bootstrap",
        )
        self._ready = True

    async def _ensure_root_key(self) -> None:
        name = self._settings.root_key_name
        try:
            await self._store.get_data_key(name)
        except DataKeyNotFoundError:
            logger.info("Data key %r not found, generating it", name)
            try:
                await self._generate_data_key(name)
            except DataKeyExistsError:
                # Another process created it between our lookup and insert
                logger.debug("Data key %r was created concurrently", name)
                return
            logger.info("Created data key %r", name)
            return
        logger.debug("Data key %r already exists", name)

    async def generate_data_key(self, name: str) -> DataKey:
        """
        Generate and persist a new random data key named ``name``.

        The key is encrypted through the empty-name path, i.e. under the static
        secret and never under another data key, and recorded with the static
        secret provider id.

        Raises:
            ValueError: If name is empty (reserved for the static secret)
            DataKeyExistsError: If the name is already stored
            StoreTimeoutError: If persistence exceeds its deadline
        """
        return await self._with_deadline(
            self._generate_data_key(name),
            self._settings.bootstrap_timeout,
            f"creating data key {name!r}",
        )

    async def _generate_data_key(self, name: str) -> DataKey:
        if not name:
            raise ValueError("The empty data key name is reserved for the static secret")

        dek = SecureKey.generate(DATA_KEY_SIZE)
        encrypted = await self._encrypt_with(STATIC_SECRET_PROVIDER_ID, dek.as_bytes())

        data_key = DataKey(
            name=name,
            provider=STATIC_SECRET_PROVIDER_ID,
            encrypted_data=encrypted,
            active=True,
        )
        await self._store.create_data_key(data_key)
        return data_key

    # -------------------------------------------------------------------------
    # Data key resolution
    # -------------------------------------------------------------------------

    async def resolve_data_key(self, name: str) -> bytes:
        """
        Return the plaintext data key for ``name``.

        Raises:
            DataKeyNotFoundError: If the store has no such key
            ProviderNotFoundError: If the key's provider is not registered
            StoreTimeoutError: If the store lookup exceeds its deadline
            CryptoError: If the provider cannot unwrap the key
        """
        if name == "":
            return self._static_secret

        cached = self._cache.get(name)
        if cached is not None:
            return cached

        logger.debug("Data key cache miss for %r", name)
        data_key = await self._with_deadline(
            self._store.get_data_key(name),
            self._settings.data_key_fetch_timeout,
            f"fetching data key {name!r}",
        )

        provider = self._registry.resolve(data_key.provider)
        plaintext = await provider.decrypt(data_key.encrypted_data)

        self._cache.put(name, plaintext, self._settings.data_key_cache_ttl)
        return plaintext

    def invalidate_data_key(self, name: str) -> bool:
        """Drop a cached data key so the next use reloads it from the store."""
        return self._cache.remove(name)

    def clear_cache(self) -> None:
        self._cache.clear()

    # -------------------------------------------------------------------------
    # Payload encryption
    # -------------------------------------------------------------------------

    async def encrypt(self, payload: bytes) -> bytes:
        """
        Encrypt ``payload`` under the default encryption key.

        Returns:
            Enveloped blob naming the data key that was used
        """
        self._check_ready()
        return await self._encrypt_with(self._settings.default_encryption_key, payload)

    async def decrypt(self, blob: bytes) -> bytes:
        """
        Decrypt a blob produced by ``encrypt`` (or a legacy static secret blob).

        An empty blob decrypts to empty bytes without touching the store.

        Raises:
            MalformedEnvelopeError: If the envelope header is invalid
            CryptoError: If authentication fails (wrong key or tampering)
        """
        self._check_ready()
        if not blob:
            return b""

        envelope = decode_envelope(bytes(blob))
        if envelope.key_name is None:
            data_key = self._static_secret
        else:
            data_key = await self.resolve_data_key(envelope.key_name)

        return AesGcmCipher.decrypt(data_key, envelope.ciphertext)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    async def _encrypt_with(self, name: str, payload: bytes) -> bytes:
        data_key = await self.resolve_data_key(name)
        ciphertext = AesGcmCipher.encrypt(data_key, bytes(payload))
        return encode_envelope(name, ciphertext)

    def _check_ready(self) -> None:
        if not self._ready:
            raise ServiceNotReadyError("SecretsService.initialize() has not completed")

    @staticmethod
    async def _with_deadline(aw: Awaitable[T], timeout: float, what: str) -> T:
        try:
            return await asyncio.wait_for(aw, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Timed out after %.1fs %s", timeout, what)
            raise StoreTimeoutError(f"Timed out after {timeout}s {what}") from None
