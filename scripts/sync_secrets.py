# scripts/sync_secrets.py
"""
Sync the Firebase web client configuration between Azure Key Vault and the
app's runtime configuration (environment / .env).

    python -m scripts.sync_secrets upload-config   # FIREBASE_* env -> one JSON secret
    python -m scripts.sync_secrets upload-env      # FIREBASE_* env -> one secret per variable
    python -m scripts.sync_secrets verify          # read the JSON secret back, list its keys
    python -m scripts.sync_secrets pull --env-file .env   # JSON secret -> FIREBASE_* lines in .env
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Mapping, Optional

from dotenv import load_dotenv, set_key

import config
from utils.client_config import (
    ConfigError,
    KeyVaultSecretSource,
    config_from_environment,
    config_from_vault,
    missing_fields,
)

logger = logging.getLogger("sync_secrets")


def upload_config(vault, environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Store the whole client config as one JSON secret. Returns the uploaded key names."""
    client_config = config_from_environment(environ)
    vault.set_secret(vault.secret_name, json.dumps(client_config, indent=2))
    logger.info("Uploaded Firebase client configuration to secret '%s'", vault.secret_name)
    return sorted(client_config)


def upload_env(vault, environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Store each FIREBASE_* variable as its own secret (Key Vault names cannot contain '_')."""
    environ = os.environ if environ is None else environ
    present = {field: environ.get(var) for field, var in config.FIREBASE_ENV_VARS.items() if environ.get(var)}
    missing = missing_fields(present)
    if missing:
        raise ConfigError("Missing required Firebase configuration values",
                          missing=[config.FIREBASE_ENV_VARS[f] for f in missing])

    uploaded = []
    for field, value in present.items():
        name = config.FIREBASE_ENV_VARS[field].replace("_", "-")
        vault.set_secret(name, value)
        logger.info("Uploaded %s", name)
        uploaded.append(name)
    return uploaded


def verify(vault) -> List[str]:
    client_config = config_from_vault(vault)
    return sorted(client_config)


def pull(vault, env_file: str) -> List[str]:
    """Write the vault config into FIREBASE_* lines of an env file, keeping its other lines."""
    client_config = config_from_vault(vault)
    if not os.path.exists(env_file):
        open(env_file, "a").close()
    written = []
    for field, var in config.FIREBASE_ENV_VARS.items():
        if client_config.get(field):
            set_key(env_file, var, str(client_config[field]))
            written.append(var)
    logger.info("Wrote %d settings to %s", len(written), env_file)
    return written


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync Firebase client configuration with Azure Key Vault.")
    parser.add_argument("--vault", default=None, help="Key Vault name (default: AZURE_KEY_VAULT_NAME)")
    parser.add_argument("--secret", default=config.CLIENT_CONFIG_SECRET, help="Secret holding the JSON config")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("upload-config", help="Upload FIREBASE_* variables as one JSON secret")
    sub.add_parser("upload-env", help="Upload each FIREBASE_* variable as its own secret")
    sub.add_parser("verify", help="Read the JSON secret and list its keys")
    pull_parser = sub.add_parser("pull", help="Write the JSON secret into an env file")
    pull_parser.add_argument("--env-file", default=".env")
    return parser


def main(argv=None, vault=None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()
    config.configure_logging()
    vault = vault or KeyVaultSecretSource(vault_name=args.vault, secret_name=args.secret)
    logger.info("Using Azure Key Vault %s", vault.vault_url)

    try:
        if args.command == "upload-config":
            keys = upload_config(vault)
        elif args.command == "upload-env":
            keys = upload_env(vault)
        elif args.command == "verify":
            keys = verify(vault)
        else:
            keys = pull(vault, args.env_file)
    except ConfigError as exc:
        logger.error("%s%s", exc, f": {', '.join(exc.missing)}" if exc.missing else "")
        return 1

    for key in keys:
        print(f"- {key}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
