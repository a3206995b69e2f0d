"""
Secrets service settings.

Reads configuration from the environment (and a ``.env`` file if present):

    SECRETS_SECRET_KEY              static secret (required)
    SECRETS_DEFAULT_ENCRYPTION_KEY  data key used by encrypt ("" = static secret)
    SECRETS_DATA_KEY_CACHE_TTL      seconds a decrypted data key stays cached
    SECRETS_DATA_KEY_FETCH_TIMEOUT  seconds allowed per data key store lookup
    SECRETS_BOOTSTRAP_TIMEOUT       seconds allowed for root key bootstrap
    DATABASE_URL                    PostgreSQL DSN for PostgresDataKeyStore

Never log the secret key.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv

from .cache import DEFAULT_DATA_KEY_TTL
from .errors import ConfigError

ENV_PREFIX = "SECRETS_"

DEFAULT_FETCH_TIMEOUT: float = 1.0
DEFAULT_BOOTSTRAP_TIMEOUT: float = 10.0
ROOT_KEY_NAME: str = "root"


def _float_setting(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class SecretsSettings:
    """Validated secrets service configuration."""

    secret_key: str = field(repr=False)
    default_encryption_key: str = ""
    database_url: Optional[str] = field(default=None, repr=False)
    data_key_cache_ttl: float = DEFAULT_DATA_KEY_TTL
    data_key_fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    bootstrap_timeout: float = DEFAULT_BOOTSTRAP_TIMEOUT
    root_key_name: str = ROOT_KEY_NAME

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ConfigError(f"{ENV_PREFIX}SECRET_KEY must be set")
        if not self.root_key_name:
            raise ConfigError("Root data key name must not be empty")
        for name in ("data_key_cache_ttl", "data_key_fetch_timeout", "bootstrap_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")

    @property
    def secret_key_bytes(self) -> bytes:
        return self.secret_key.encode("utf-8")

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Union[str, Path]] = None,
    ) -> SecretsSettings:
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (no .env loading)
            dotenv_path: Explicit .env file; defaults to searching upwards

        Raises:
            ConfigError: If the secret is missing or a number is invalid
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        return cls(
            secret_key=env.get(f"{ENV_PREFIX}SECRET_KEY", ""),
            default_encryption_key=env.get(f"{ENV_PREFIX}DEFAULT_ENCRYPTION_KEY", ""),
            database_url=env.get("DATABASE_URL") or None,
            data_key_cache_ttl=_float_setting(
                env, f"{ENV_PREFIX}DATA_KEY_CACHE_TTL", DEFAULT_DATA_KEY_TTL
            ),
            data_key_fetch_timeout=_float_setting(
                env, f"{ENV_PREFIX}DATA_KEY_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT
            ),
            bootstrap_timeout=_float_setting(
                env, f"{ENV_PREFIX}BOOTSTRAP_TIMEOUT", DEFAULT_BOOTSTRAP_TIMEOUT
            ),
        )
