"""
PostgreSQL storage backend for data keys.

This module provides:
- PostgresDataKeyStore: asyncpg-backed implementation of DataKeyStore

Data keys are stored encrypted by their provider, so the table never holds
usable key material on its own.
"""

from __future__ import annotations

from typing import List

import asyncpg

from .errors import DataKeyExistsError, DataKeyNotFoundError, StorageError
from .storage import DataKey, DataKeyStore

SCHEMA = """
    CREATE TABLE IF NOT EXISTS data_keys (
        name            TEXT PRIMARY KEY CHECK (name <> ''),
        provider        TEXT NOT NULL,
        encrypted_data  BYTEA NOT NULL,
        active          BOOLEAN NOT NULL DEFAULT TRUE,
        created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at      TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

_COLUMNS = "name, provider, encrypted_data, active, created_at, updated_at"


class PostgresDataKeyStore(DataKeyStore):
    """PostgreSQL storage backend for data keys."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        """
        Initialize PostgreSQL storage.

        Args:
            pool: asyncpg connection pool
        """
        self._pool = pool

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool."""
        return self._pool

    async def ensure_schema(self) -> None:
        """Create the data_keys table if it does not exist."""
        try:
            await self._pool.execute(SCHEMA)
        except Exception as e:
            raise StorageError(f"Failed to create data_keys table: {e}") from e

    async def get_data_key(self, name: str) -> DataKey:
        query = f"SELECT {_COLUMNS} FROM data_keys WHERE name = $1"
        try:
            row = await self._pool.fetchrow(query, name)
        except Exception as e:
            raise StorageError(f"Failed to get data key: {e}") from e
        if row is None:
            raise DataKeyNotFoundError(name)
        return self._row_to_data_key(row)

    async def create_data_key(self, data_key: DataKey) -> None:
        if not data_key.name:
            raise StorageError("Data key name must not be empty")
        query = f"""
            INSERT INTO data_keys ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6)
        """
        try:
            await self._pool.execute(
                query,
                data_key.name,
                data_key.provider,
                data_key.encrypted_data,
                data_key.active,
                data_key.created_at,
                data_key.updated_at,
            )
        except asyncpg.UniqueViolationError:
            raise DataKeyExistsError(data_key.name) from None
        except Exception as e:
            raise StorageError(f"Failed to store data key: {e}") from e

    async def list_data_keys(self) -> List[DataKey]:
        query = f"SELECT {_COLUMNS} FROM data_keys ORDER BY name"
        try:
            rows = await self._pool.fetch(query)
        except Exception as e:
            raise StorageError(f"Failed to list data keys: {e}") from e
        return [self._row_to_data_key(row) for row in rows]

    async def delete_data_key(self, name: str) -> bool:
        try:
            status = await self._pool.execute(
                "DELETE FROM data_keys WHERE name = $1", name
            )
        except Exception as e:
            raise StorageError(f"Failed to delete data key: {e}") from e
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return status.split()[-1] != "0"

    async def set_data_key_active(self, name: str, active: bool) -> None:
        query = """
            UPDATE data_keys SET active = $2, updated_at = now()
            WHERE name = $1
        """
        try:
            status = await self._pool.execute(query, name, active)
        except Exception as e:
            raise StorageError(f"Failed to update data key: {e}") from e
        if status.split()[-1] == "0":
            raise DataKeyNotFoundError(name)

    @staticmethod
    def _row_to_data_key(row: asyncpg.Record) -> DataKey:
        """Convert database row to DataKey."""
        return DataKey(
            name=row["name"],
            provider=row["provider"],
            encrypted_data=bytes(row["encrypted_data"]),
            active=row["active"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
