"""
Storage abstractions for data keys.

This module provides:
- DataKey: Persisted, provider-encrypted data key record
- DataKeyStore: Abstract store contract consumed by the secrets service
- InMemoryDataKeyStore: asyncio-safe in-memory implementation for testing
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List

from .errors import DataKeyExistsError, DataKeyNotFoundError, StorageError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DataKey:
    """
    Stored data key.

    ``encrypted_data`` is the data key wrapped by the provider named in
    ``provider``. Records are immutable once created except for ``active``.
    """

    name: str
    provider: str
    encrypted_data: bytes
    active: bool = True
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __repr__(self) -> str:
        return (
            f"DataKey(name={self.name!r}, provider={self.provider!r}, "
            f"active={self.active})"
        )


class DataKeyStore(ABC):
    """
    Abstract data key store.

    All methods are async to support both in-memory and database backends.
    The service bounds calls with its own deadlines, so implementations must
    be cancellation safe.
    """

    @abstractmethod
    async def get_data_key(self, name: str) -> DataKey:
        """
        Get a data key by name.

        Raises:
            DataKeyNotFoundError: If no key with that name exists
            StorageError: If the backend fails
        """
        ...

    @abstractmethod
    async def create_data_key(self, data_key: DataKey) -> None:
        """
        Store a new data key.

        Raises:
            DataKeyExistsError: If the name is already taken
            StorageError: If the backend fails or the name is empty
        """
        ...

    @abstractmethod
    async def list_data_keys(self) -> List[DataKey]:
        """List all stored data keys."""
        ...

    @abstractmethod
    async def delete_data_key(self, name: str) -> bool:
        """Delete a data key. Returns False if it did not exist."""
        ...

    @abstractmethod
    async def set_data_key_active(self, name: str, active: bool) -> None:
        """
        Flip the ``active`` flag of a stored data key.

        Raises:
            DataKeyNotFoundError: If no key with that name exists
        """
        ...


class InMemoryDataKeyStore(DataKeyStore):
    """
    In-memory store implementation for testing.

    Uses asyncio.Lock for safe concurrent access.
    """

    def __init__(self) -> None:
        self._keys: Dict[str, DataKey] = {}
        self._lock = asyncio.Lock()

    async def get_data_key(self, name: str) -> DataKey:
        async with self._lock:
            data_key = self._keys.get(name)
        if data_key is None:
            raise DataKeyNotFoundError(name)
        return data_key

    async def create_data_key(self, data_key: DataKey) -> None:
        if not data_key.name:
            raise StorageError("Data key name must not be empty")
        async with self._lock:
            if data_key.name in self._keys:
                raise DataKeyExistsError(data_key.name)
            self._keys[data_key.name] = data_key

    async def list_data_keys(self) -> List[DataKey]:
        async with self._lock:
            return sorted(self._keys.values(), key=lambda k: k.name)

    async def delete_data_key(self, name: str) -> bool:
        async with self._lock:
            return self._keys.pop(name, None) is not None

    async def set_data_key_active(self, name: str, active: bool) -> None:
        async with self._lock:
            data_key = self._keys.get(name)
            if data_key is None:
                raise DataKeyNotFoundError(name)
            self._keys[name] = replace(data_key, active=active, updated_at=_utcnow())
