import base64
import json
from types import SimpleNamespace

import pytest
from azure.core.exceptions import AzureError

import config
from utils.client_config import (
    ConfigError,
    ConfigValidationError,
    KeyVaultSecretSource,
    VaultUnavailableError,
    decode_secret,
    resolve_client_config,
)

VAULT_CONFIG = {
    "apiKey": "vault-key",
    "authDomain": "ipl-vault.firebaseapp.com",
    "projectId": "ipl-vault",
    "storageBucket": "ipl-vault.appspot.com",
    "messagingSenderId": "42",
    "appId": "1:42:web:vault",
}


class FakeVault:
    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error
        self.reads = 0

    def get_secret(self, name=None):
        self.reads += 1
        if self.error:
            raise self.error
        return self.value


def test_environment_wins_and_vault_is_not_read(firebase_env):
    vault = FakeVault(json.dumps(VAULT_CONFIG))
    firebase_env["FIREBASE_MEASUREMENT_ID"] = "G-TEST"

    result = resolve_client_config(firebase_env, vault, allow_fallback=False)

    assert result["apiKey"] == "AIza-test-key"
    assert result["measurementId"] == "G-TEST"
    assert vault.reads == 0


def test_incomplete_environment_falls_through_to_vault(firebase_env):
    del firebase_env["FIREBASE_APP_ID"]
    assert resolve_client_config(firebase_env, FakeVault(json.dumps(VAULT_CONFIG)), allow_fallback=False) == VAULT_CONFIG


def test_base64_encoded_vault_secret():
    encoded = base64.b64encode(json.dumps(VAULT_CONFIG).encode()).decode()
    assert resolve_client_config({}, FakeVault(encoded), allow_fallback=False) == VAULT_CONFIG


def test_unreachable_vault_uses_fallback_when_allowed():
    vault = FakeVault(error=VaultUnavailableError("vault down"))
    assert resolve_client_config({}, vault, allow_fallback=True) == config.FALLBACK_FIREBASE_CONFIG


def test_incomplete_vault_secret_uses_fallback_when_allowed():
    partial = {k: v for k, v in VAULT_CONFIG.items() if k != "projectId"}
    assert resolve_client_config({}, FakeVault(json.dumps(partial))) == config.FALLBACK_FIREBASE_CONFIG


def test_no_fallback_raises_with_missing_fields(firebase_env):
    del firebase_env["FIREBASE_API_KEY"]
    vault = FakeVault(error=AzureError("forbidden"))

    with pytest.raises(ConfigError) as excinfo:
        resolve_client_config(firebase_env, vault, allow_fallback=False)

    assert excinfo.value.missing == ["apiKey"]
    assert len(excinfo.value.reasons) == 2


def test_no_vault_configured():
    with pytest.raises(ConfigError) as excinfo:
        resolve_client_config({}, None, allow_fallback=False)
    assert "No secret vault configured" in excinfo.value.reasons


@pytest.mark.parametrize("value", ["not json at all {", json.dumps(["a", "b"])])
def test_decode_secret_rejects_non_objects(value):
    with pytest.raises(ConfigValidationError):
        decode_secret(value)


def test_key_vault_source_wraps_sdk_errors():
    class BrokenClient:
        def get_secret(self, name):
            raise AzureError("connection reset")

    vault = KeyVaultSecretSource(vault_name="ipl-vault", client=BrokenClient())
    assert vault.vault_url == "https://ipl-vault.vault.azure.net"
    with pytest.raises(VaultUnavailableError):
        vault.get_secret()


def test_key_vault_source_rejects_empty_secret():
    class EmptyClient:
        def get_secret(self, name):
            return SimpleNamespace(name=name, value="")

    with pytest.raises(VaultUnavailableError):
        KeyVaultSecretSource(vault_name="ipl-vault", client=EmptyClient()).get_secret()


def test_fallback_never_allowed_in_production(monkeypatch):
    monkeypatch.delenv("ALLOW_FALLBACK_CONFIG", raising=False)
    monkeypatch.setenv("APP_ENV", "development")
    assert config.fallback_allowed()

    monkeypatch.setenv("ALLOW_FALLBACK_CONFIG", "false")
    assert not config.fallback_allowed()

    monkeypatch.setenv("ALLOW_FALLBACK_CONFIG", "true")
    monkeypatch.setenv("APP_ENV", "production")
    assert not config.fallback_allowed()
