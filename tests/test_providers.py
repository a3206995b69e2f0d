"""Tests for data key providers and the provider registry."""
import pytest

from envelope_secrets import (
    STATIC_SECRET_PROVIDER_ID,
    AesGcmCipher,
    ConfigError,
    CryptoError,
    ProviderNotFoundError,
    ProviderRegistry,
    StaticSecretProvider,
    encode_envelope,
)


async def test_static_secret_provider_round_trip():
    provider = StaticSecretProvider(b"secret")
    wrapped = await provider.encrypt(b"0123456789abcdef")

    assert wrapped != b"0123456789abcdef"
    assert await provider.decrypt(wrapped) == b"0123456789abcdef"


async def test_static_secret_provider_rejects_other_secret():
    wrapped = await StaticSecretProvider(b"one").encrypt(b"data key")
    with pytest.raises(CryptoError):
        await StaticSecretProvider(b"two").decrypt(wrapped)


async def test_static_secret_provider_uses_empty_name_envelope():
    wrapped = await StaticSecretProvider(b"secret").encrypt(b"data key")

    assert wrapped.startswith(b"##")
    assert AesGcmCipher.decrypt(b"secret", wrapped[2:]) == b"data key"


async def test_static_secret_provider_accepts_legacy_body():
    legacy = AesGcmCipher.encrypt(b"secret", b"data key")
    while legacy.startswith(b"#"):
        legacy = AesGcmCipher.encrypt(b"secret", b"data key")

    assert await StaticSecretProvider(b"secret").decrypt(legacy) == b"data key"


async def test_static_secret_provider_rejects_named_envelope():
    blob = encode_envelope("root", AesGcmCipher.encrypt(b"secret", b"data key"))
    with pytest.raises(CryptoError):
        await StaticSecretProvider(b"secret").decrypt(blob)


def test_static_secret_provider_requires_secret():
    with pytest.raises(ConfigError):
        StaticSecretProvider(b"")


def test_repr_hides_secret():
    assert "hunter2" not in repr(StaticSecretProvider(b"hunter2"))


class TestRegistry:

    def test_with_static_secret_registers_empty_id(self):
        registry = ProviderRegistry.with_static_secret(b"secret")
        assert STATIC_SECRET_PROVIDER_ID == ""
        assert "" in registry
        assert isinstance(registry.resolve(""), StaticSecretProvider)

    def test_resolve_unknown(self):
        registry = ProviderRegistry()
        with pytest.raises(ProviderNotFoundError) as exc:
            registry.resolve("kms")
        assert exc.value.provider_id == "kms"

    def test_register_and_list(self):
        registry = ProviderRegistry.with_static_secret(b"secret")
        kms = StaticSecretProvider(b"other")
        registry.register("kms", kms)

        assert registry.resolve("kms") is kms
        assert registry.ids() == ["", "kms"]
        assert len(registry) == 2

    def test_duplicate_registration(self):
        registry = ProviderRegistry.with_static_secret(b"secret")
        with pytest.raises(ConfigError):
            registry.register("", StaticSecretProvider(b"again"))

    def test_register_requires_provider(self):
        with pytest.raises(ConfigError):
            ProviderRegistry().register("x", object())  # type: ignore[arg-type]
