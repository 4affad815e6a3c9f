# utils/client_config.py
"""
Firebase web client configuration.

Sources are tried in a fixed order and the first complete one wins:

1. FIREBASE_* environment variables
2. a single JSON (optionally base64-encoded) secret in Azure Key Vault
3. the hardcoded development config in config.py, if allowed

Nothing is retried. Each stage logs where the config came from; secret
values are never logged, only key names.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import re
from typing import Any, Dict, List, Mapping, Optional

from azure.core.exceptions import AzureError

from config import (
    CLIENT_CONFIG_SECRET,
    FALLBACK_FIREBASE_CONFIG,
    FIREBASE_ENV_VARS,
    REQUIRED_FIREBASE_FIELDS,
    key_vault_name,
)

logger = logging.getLogger(__name__)

BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/=]+$")


class ConfigError(Exception):
    """No usable client configuration. `reasons` lists why each source was rejected."""

    def __init__(self, message: str, missing: Optional[List[str]] = None, reasons: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])
        self.reasons = list(reasons or [])


class ConfigValidationError(ConfigError):
    def __init__(self, source: str, missing: Optional[List[str]] = None, detail: Optional[str] = None):
        missing = list(missing or [])
        message = detail or f"Firebase config from {source} is missing required fields: {', '.join(missing)}"
        super().__init__(message, missing=missing)
        self.source = source


class VaultUnavailableError(ConfigError):
    pass


def missing_fields(config: Mapping[str, Any]) -> List[str]:
    return [field for field in REQUIRED_FIREBASE_FIELDS if not config.get(field)]


def config_from_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    environ = os.environ if environ is None else environ
    config = {field: environ[var] for field, var in FIREBASE_ENV_VARS.items() if environ.get(var)}
    missing = missing_fields(config)
    if missing:
        raise ConfigValidationError("environment", missing)
    return config


def decode_secret(value: str) -> Dict[str, Any]:
    """Parse a secret holding the config as JSON, or as base64-encoded JSON."""
    text = value.strip()
    if BASE64_PATTERN.match(text):
        logger.debug("Secret value looks base64 encoded, decoding")
        try:
            text = base64.b64decode(text, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.debug("Secret value is not valid base64, parsing as-is")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigValidationError("vault", detail=f"Invalid configuration format: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigValidationError("vault", detail="Invalid configuration format: expected a JSON object")
    return data


class KeyVaultSecretSource:
    """Reads (and, for the sync scripts, writes) secrets in one Azure Key Vault."""

    def __init__(self, vault_name: Optional[str] = None, secret_name: str = CLIENT_CONFIG_SECRET,
                 credential=None, client=None):
        self.vault_name = vault_name or key_vault_name()
        self.vault_url = f"https://{self.vault_name}.vault.azure.net"
        self.secret_name = secret_name
        self._credential = credential
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from azure.identity import DefaultAzureCredential
            from azure.keyvault.secrets import SecretClient

            self._client = SecretClient(vault_url=self.vault_url, credential=self._credential or DefaultAzureCredential())
        return self._client

    def get_secret(self, name: Optional[str] = None) -> str:
        name = name or self.secret_name
        try:
            secret = self.client.get_secret(name)
        except AzureError as exc:
            raise VaultUnavailableError(f"Could not read secret '{name}' from {self.vault_url}: {exc}") from exc
        if not secret.value:
            raise VaultUnavailableError(f"No value found in secret '{name}'")
        return secret.value

    def set_secret(self, name: str, value: str) -> None:
        try:
            self.client.set_secret(name, value)
        except AzureError as exc:
            raise VaultUnavailableError(f"Could not write secret '{name}' to {self.vault_url}: {exc}") from exc


def config_from_vault(vault) -> Dict[str, Any]:
    config = decode_secret(vault.get_secret())
    missing = missing_fields(config)
    if missing:
        raise ConfigValidationError("vault", missing)
    logger.info("Retrieved Firebase config from vault with keys: %s", sorted(config))
    return config


def resolve_client_config(
    environ: Optional[Mapping[str, str]] = None,
    vault=None,
    allow_fallback: bool = True,
) -> Dict[str, Any]:
    reasons: List[str] = []
    env_missing: List[str] = []

    try:
        config = config_from_environment(environ)
        logger.info("Using Firebase config from environment variables")
        return config
    except ConfigValidationError as exc:
        env_missing = exc.missing
        reasons.append(str(exc))
        logger.info("Firebase config not complete in environment (missing %s), trying vault", ", ".join(exc.missing))

    if vault is None:
        reasons.append("No secret vault configured")
    else:
        try:
            config = config_from_vault(vault)
            logger.info("Using Firebase config from vault")
            return config
        except (ConfigError, AzureError) as exc:
            reasons.append(str(exc))
            logger.warning("Could not use Firebase config from vault: %s", exc)

    if allow_fallback:
        logger.warning("Using hardcoded fallback Firebase config (development only)")
        return dict(FALLBACK_FIREBASE_CONFIG)

    raise ConfigError("No complete Firebase client configuration available", missing=env_missing, reasons=reasons)
