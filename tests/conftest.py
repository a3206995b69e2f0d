"""
Pytest configuration and fixtures for secrets service tests.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import AsyncGenerator, Dict, List

import asyncpg
import pytest
from dotenv import load_dotenv

from envelope_secrets import (
    DataKey,
    DataKeyCache,
    InMemoryDataKeyStore,
    PostgresDataKeyStore,
    Provider,
    SecretsService,
    SecretsSettings,
    StaticSecretProvider,
    StorageError,
)

SECRET = "SW2YcwTIb9zpOOhoPsMm"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingStore(InMemoryDataKeyStore):
    """In-memory store recording every lookup and insert."""

    def __init__(self) -> None:
        super().__init__()
        self.gets: List[str] = []
        self.creates: List[str] = []

    async def get_data_key(self, name: str) -> DataKey:
        self.gets.append(name)
        return await super().get_data_key(name)

    async def create_data_key(self, data_key: DataKey) -> None:
        self.creates.append(data_key.name)
        await super().create_data_key(data_key)


class YieldingStore(CountingStore):
    """Store that yields to the event loop inside every lookup and insert."""

    async def get_data_key(self, name: str) -> DataKey:
        await asyncio.sleep(0.01)
        return await super().get_data_key(name)

    async def create_data_key(self, data_key: DataKey) -> None:
        await asyncio.sleep(0.01)
        await super().create_data_key(data_key)


class SlowStore(InMemoryDataKeyStore):
    """Store whose lookups hang for names listed in ``slow_names``."""

    def __init__(self, *slow_names: str, delay: float = 5.0) -> None:
        super().__init__()
        self.slow_names = set(slow_names)
        self.delay = delay

    async def get_data_key(self, name: str) -> DataKey:
        if name in self.slow_names:
            await asyncio.sleep(self.delay)
        return await super().get_data_key(name)


class FailingStore(InMemoryDataKeyStore):
    """Store that is unavailable."""

    async def get_data_key(self, name: str) -> DataKey:
        raise StorageError("connection refused")


class CountingProvider(Provider):
    """Static secret provider that counts wrap/unwrap calls."""

    def __init__(self, secret: bytes = b"provider-secret") -> None:
        self._inner = StaticSecretProvider(secret)
        self.calls: Dict[str, int] = {"encrypt": 0, "decrypt": 0}

    async def encrypt(self, blob: bytes) -> bytes:
        self.calls["encrypt"] += 1
        return await self._inner.encrypt(blob)

    async def decrypt(self, blob: bytes) -> bytes:
        self.calls["decrypt"] += 1
        return await self._inner.decrypt(blob)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> InMemoryDataKeyStore:
    """Create an in-memory store instance for testing."""
    return InMemoryDataKeyStore()


@pytest.fixture
def counting_store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def settings() -> SecretsSettings:
    return SecretsSettings(secret_key=SECRET)


@pytest.fixture
def root_settings() -> SecretsSettings:
    """Settings that encrypt under the bootstrapped root data key."""
    return SecretsSettings(secret_key=SECRET, default_encryption_key="root")


@pytest.fixture
async def service(counting_store: CountingStore, settings: SecretsSettings) -> SecretsService:
    """Initialized service encrypting under the static secret."""
    return await SecretsService.new(counting_store, settings)


@pytest.fixture
async def root_service(
    counting_store: CountingStore, root_settings: SecretsSettings, clock: FakeClock
) -> SecretsService:
    """Initialized service encrypting under the root data key, fake clock cache."""
    svc = SecretsService(
        counting_store,
        root_settings,
        cache=DataKeyCache(ttl=root_settings.data_key_cache_ttl, clock=clock),
    )
    await svc.initialize()
    return svc


@pytest.fixture
async def pg_pool() -> AsyncGenerator[asyncpg.Pool, None]:
    """Create a PostgreSQL connection pool for testing."""
    # Load environment from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(env_path)

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set, skipping PostgreSQL tests")

    pool = await asyncpg.create_pool(database_url)
    if pool is None:
        pytest.skip("Failed to create PostgreSQL connection pool")

    await PostgresDataKeyStore(pool).ensure_schema()
    await pool.execute("TRUNCATE TABLE data_keys")

    yield pool

    await pool.close()


@pytest.fixture
async def postgres_store(pg_pool: asyncpg.Pool) -> PostgresDataKeyStore:
    """Create a PostgreSQL store instance for testing."""
    return PostgresDataKeyStore(pg_pool)
