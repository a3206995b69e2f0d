"""
Envelope Secrets Library

Envelope encryption of arbitrary byte payloads with named data keys, pluggable
data key providers and a time-bounded data key cache.

Quick Start
-----------
```python
import asyncio
from envelope_secrets import InMemoryDataKeyStore, SecretsService, SecretsSettings

async def main():
    settings = SecretsSettings(secret_key="change-me", default_encryption_key="root")
    service = await SecretsService.new(InMemoryDataKeyStore(), settings)

    blob = await service.encrypt(b"Sensitive data")
    assert await service.decrypt(blob) == b"Sensitive data"

asyncio.run(main())
```

Wire Format
-----------
- ``#`` base64(key name, unpadded) ``#`` ciphertext: enveloped blob
- anything else not starting with ``#``: legacy blob under the static secret
- empty: decrypts to empty

Modules
-------
- `crypto`: AES-256-GCM payload cipher
- `envelope`: Ciphertext envelope codec
- `providers`: Data key providers and registry
- `cache`: Decrypted data key cache
- `storage`: Data key records and in-memory store
- `postgres_storage`: PostgreSQL data key store
- `service`: Secrets service
- `config`: Settings loaded from the environment
- `errors`: Error types and exception classes
"""

__version__ = "0.1.0"

# ============================================================================
# Crypto Exports
# ============================================================================

from .crypto import (
    AES_256_KEY_SIZE,
    DATA_KEY_SIZE,
    NONCE_SIZE,
    SALT_SIZE,
    TAG_SIZE,
    AesGcmCipher,
    EncryptedData,
    SecureKey,
    generate_random_bytes,
)

# ============================================================================
# Error Exports
# ============================================================================

from .errors import (
    ConfigError,
    CryptoError,
    DataKeyExistsError,
    DataKeyNotFoundError,
    MalformedEnvelopeError,
    ProviderNotFoundError,
    RandomSourceError,
    SecretsError,
    ServiceNotReadyError,
    StorageError,
    StoreTimeoutError,
)

# ============================================================================
# Envelope Exports
# ============================================================================

from .envelope import (
    Envelope,
    decode_envelope,
    encode_envelope,
)

# ============================================================================
# Provider Exports
# ============================================================================

from .providers import (
    STATIC_SECRET_PROVIDER_ID,
    Provider,
    ProviderRegistry,
    StaticSecretProvider,
)

# ============================================================================
# Cache Exports
# ============================================================================

from .cache import (
    DEFAULT_DATA_KEY_TTL,
    CacheEntry,
    DataKeyCache,
)

# ============================================================================
# Storage Exports
# ============================================================================

from .storage import (
    DataKey,
    DataKeyStore,
    InMemoryDataKeyStore,
)

from .postgres_storage import PostgresDataKeyStore

# ============================================================================
# Service Exports (Primary API)
# ============================================================================

from .config import SecretsSettings
from .service import SecretsService

# ============================================================================
# Public API
# ============================================================================

__all__ = [
    # Version
    "__version__",
    # Crypto
    "AES_256_KEY_SIZE",
    "DATA_KEY_SIZE",
    "NONCE_SIZE",
    "SALT_SIZE",
    "TAG_SIZE",
    "AesGcmCipher",
    "EncryptedData",
    "SecureKey",
    "generate_random_bytes",
    # Errors
    "SecretsError",
    "MalformedEnvelopeError",
    "DataKeyNotFoundError",
    "DataKeyExistsError",
    "ProviderNotFoundError",
    "CryptoError",
    "RandomSourceError",
    "StorageError",
    "StoreTimeoutError",
    "ConfigError",
    "ServiceNotReadyError",
    # Envelope
    "Envelope",
    "encode_envelope",
    "decode_envelope",
    # Providers
    "STATIC_SECRET_PROVIDER_ID",
    "Provider",
    "ProviderRegistry",
    "StaticSecretProvider",
    # Cache
    "DEFAULT_DATA_KEY_TTL",
    "CacheEntry",
    "DataKeyCache",
    # Storage
    "DataKey",
    "DataKeyStore",
    "InMemoryDataKeyStore",
    "PostgresDataKeyStore",
    # Service (Primary API)
    "SecretsSettings",
    "SecretsService",
]
