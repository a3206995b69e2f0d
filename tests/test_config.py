"""Tests for SecretsSettings."""
import os

import pytest

from envelope_secrets import ConfigError, SecretsSettings


def test_defaults():
    settings = SecretsSettings(secret_key="s3cret")
    assert settings.default_encryption_key == ""
    assert settings.root_key_name == "root"
    assert settings.data_key_cache_ttl == 900
    assert settings.data_key_fetch_timeout == 1
    assert settings.bootstrap_timeout == 10
    assert settings.secret_key_bytes == b"s3cret"


def test_repr_hides_secret():
    settings = SecretsSettings(secret_key="s3cret", database_url="postgresql://u:pw@db/x")
    assert "s3cret" not in repr(settings)
    assert "pw" not in repr(settings)


def test_secret_required():
    with pytest.raises(ConfigError):
        SecretsSettings(secret_key="")


def test_from_env_mapping():
    settings = SecretsSettings.from_env(
        env={
            "SECRETS_SECRET_KEY": "from-env",
            "SECRETS_DEFAULT_ENCRYPTION_KEY": "root",
            "SECRETS_DATA_KEY_CACHE_TTL": "60",
            "SECRETS_DATA_KEY_FETCH_TIMEOUT": "0.5",
            "DATABASE_URL": "postgresql://localhost/secrets",
        }
    )
    assert settings.secret_key == "from-env"
    assert settings.default_encryption_key == "root"
    assert settings.data_key_cache_ttl == 60
    assert settings.data_key_fetch_timeout == 0.5
    assert settings.bootstrap_timeout == 10
    assert settings.database_url == "postgresql://localhost/secrets"


def test_from_env_blank_database_url():
    settings = SecretsSettings.from_env(env={"SECRETS_SECRET_KEY": "x", "DATABASE_URL": ""})
    assert settings.database_url is None


def test_from_env_missing_secret():
    with pytest.raises(ConfigError):
        SecretsSettings.from_env(env={})


@pytest.mark.parametrize("value", ["soon", "-1", "0"])
def test_from_env_invalid_number(value):
    with pytest.raises(ConfigError):
        SecretsSettings.from_env(
            env={"SECRETS_SECRET_KEY": "x", "SECRETS_BOOTSTRAP_TIMEOUT": value}
        )


def test_from_env_reads_dotenv(tmp_path, monkeypatch):
    monkeypatch.delenv("SECRETS_SECRET_KEY", raising=False)
    monkeypatch.delenv("SECRETS_DEFAULT_ENCRYPTION_KEY", raising=False)
    dotenv = tmp_path / ".env"
    dotenv.write_text("SECRETS_SECRET_KEY=dotenv-secret\nSECRETS_DEFAULT_ENCRYPTION_KEY=root\n")

    try:
        settings = SecretsSettings.from_env(dotenv_path=dotenv)
        assert settings.secret_key == "dotenv-secret"
        assert settings.default_encryption_key == "root"
    finally:
        os.environ.pop("SECRETS_SECRET_KEY", None)
        os.environ.pop("SECRETS_DEFAULT_ENCRYPTION_KEY", None)
