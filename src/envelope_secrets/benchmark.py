"""
Secrets Service Benchmark CLI.

Usage:
    envelope-secrets-benchmark [rounds]

Or run directly:
    python -m envelope_secrets.benchmark

Configuration:
    SECRETS_SECRET_KEY must be set in the environment or .env file.
    With DATABASE_URL set, data keys are stored in PostgreSQL
    (the data_keys table is created if missing); otherwise in memory.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from dataclasses import replace
from typing import Optional

import asyncpg

from envelope_secrets.config import SecretsSettings
from envelope_secrets.errors import ConfigError
from envelope_secrets.postgres_storage import PostgresDataKeyStore
from envelope_secrets.service import SecretsService
from envelope_secrets.storage import DataKeyStore, InMemoryDataKeyStore

DEFAULT_ROUNDS = 100


async def _time_rounds(service: SecretsService, rounds: int, payload: bytes) -> tuple[float, float]:
    encrypt_total = 0.0
    decrypt_total = 0.0
    for _ in range(rounds):
        start = time.perf_counter()
        blob = await service.encrypt(payload)
        encrypt_total += time.perf_counter() - start

        start = time.perf_counter()
        recovered = await service.decrypt(blob)
        decrypt_total += time.perf_counter() - start

        if recovered != payload:
            raise RuntimeError("Round trip mismatch")
    return encrypt_total, decrypt_total


def _report(label: str, rounds: int, encrypt_total: float, decrypt_total: float) -> None:
    print(f"[OK] {label}: {rounds} round trips")
    print(f"[PERF] Encryption: {encrypt_total * 1000 / rounds:.3f}ms avg ({rounds / encrypt_total:.2f} ops/sec)")
    print(f"[PERF] Decryption: {decrypt_total * 1000 / rounds:.3f}ms avg ({rounds / decrypt_total:.2f} ops/sec)\n")


async def run_benchmark(rounds: int = DEFAULT_ROUNDS) -> None:
    """Run the secrets service benchmark."""
    print("=== Secrets Service Benchmark ===\n")

    try:
        settings = SecretsSettings.from_env()
    except ConfigError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    pool: Optional[asyncpg.Pool] = None
    store: DataKeyStore
    if settings.database_url:
        pool = await asyncpg.create_pool(settings.database_url)
        if pool is None:
            print("ERROR: Failed to create connection pool")
            sys.exit(1)
        postgres_store = PostgresDataKeyStore(pool)
        await postgres_store.ensure_schema()
        store = postgres_store
        print("[STARTUP] Using PostgreSQL data key store")
    else:
        store = InMemoryDataKeyStore()
        print("[STARTUP] DATABASE_URL not set, using in-memory data key store")

    try:
        start = time.perf_counter()
        legacy = await SecretsService.new(store, replace(settings, default_encryption_key=""))
        print(f"[STARTUP] Service initialized in {(time.perf_counter() - start) * 1000:.3f}ms\n")

        payload = b"Sensitive data protected by envelope encryption"

        print("+" + "-" * 68 + "+")
        print("|  Demo 1: Static Secret (empty key name)" + " " * 28 + "|")
        print("+" + "-" * 68 + "+")
        _report("Static secret", rounds, *await _time_rounds(legacy, rounds, payload))

        print("+" + "-" * 68 + "+")
        print(f"|  Demo 2: Data Key {settings.root_key_name!r}" + " " * (48 - len(settings.root_key_name)) + "|")
        print("+" + "-" * 68 + "+")
        enveloped = await SecretsService.new(
            store, replace(settings, default_encryption_key=settings.root_key_name)
        )

        start = time.perf_counter()
        await enveloped.resolve_data_key(settings.root_key_name)
        cold = time.perf_counter() - start
        start = time.perf_counter()
        await enveloped.resolve_data_key(settings.root_key_name)
        warm = time.perf_counter() - start
        print(f"[PERF] Data key resolution: cold {cold * 1000:.3f}ms | cached {warm * 1000:.3f}ms")
        _report("Data key", rounds, *await _time_rounds(enveloped, rounds, payload))
    finally:
        if pool is not None:
            await pool.close()

    print("=" * 70)
    print("                    BENCHMARK COMPLETE")
    print("=" * 70 + "\n")


def parse_rounds(argv: list[str]) -> int:
    """Parse the optional rounds argument, exiting with status 1 if invalid."""
    if len(argv) < 2:
        return DEFAULT_ROUNDS
    try:
        rounds = int(argv[1])
    except ValueError:
        rounds = 0
    if rounds < 1:
        print(f"ERROR: rounds must be a positive integer, got {argv[1]!r}")
        sys.exit(1)
    return rounds


def main() -> None:
    """CLI entry point for envelope-secrets-benchmark command."""
    rounds = parse_rounds(sys.argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(run_benchmark(rounds))


if __name__ == "__main__":
    main()
