import json

import pytest
from dotenv import dotenv_values

from scripts import sync_secrets
from scripts.generate_firestore_rules import build_rules, write_rules
from utils.client_config import ConfigError


class RecordingVault:
    vault_url = "https://ipl-test.vault.azure.net"
    secret_name = "clientSideFirebaseKeyVault"

    def __init__(self, value=None):
        self.value = value
        self.written = {}

    def get_secret(self, name=None):
        return self.value

    def set_secret(self, name, value):
        self.written[name] = value


def test_upload_config_stores_one_json_secret(firebase_env):
    vault = RecordingVault()

    keys = sync_secrets.upload_config(vault, firebase_env)

    assert "apiKey" in keys
    stored = json.loads(vault.written["clientSideFirebaseKeyVault"])
    assert stored["projectId"] == "ipl-test"


def test_upload_env_uses_vault_safe_names(firebase_env):
    vault = RecordingVault()

    sync_secrets.upload_env(vault, firebase_env)

    assert vault.written["FIREBASE-API-KEY"] == "AIza-test-key"
    assert "FIREBASE-MEASUREMENT-ID" not in vault.written


def test_upload_env_refuses_incomplete_config(firebase_env):
    del firebase_env["FIREBASE_PROJECT_ID"]
    vault = RecordingVault()

    with pytest.raises(ConfigError) as excinfo:
        sync_secrets.upload_env(vault, firebase_env)
    assert excinfo.value.missing == ["FIREBASE_PROJECT_ID"]
    assert vault.written == {}


def test_pull_writes_env_file_and_keeps_other_lines(tmp_path, firebase_env):
    env_file = tmp_path / ".env"
    env_file.write_text("LOG_LEVEL=DEBUG\n")
    vault_config = {field: f"value-{field}" for field in ("apiKey", "authDomain", "projectId",
                                                         "storageBucket", "messagingSenderId", "appId")}

    written = sync_secrets.pull(RecordingVault(json.dumps(vault_config)), str(env_file))

    values = dotenv_values(env_file)
    assert len(written) == 6
    assert values["LOG_LEVEL"] == "DEBUG"
    assert values["FIREBASE_API_KEY"] == "value-apiKey"


def test_verify_command_exit_codes(capsys):
    good = {"apiKey": "k", "authDomain": "d", "projectId": "p", "storageBucket": "b",
            "messagingSenderId": "1", "appId": "a"}

    assert sync_secrets.main(["verify"], vault=RecordingVault(json.dumps(good))) == 0
    assert "- apiKey" in capsys.readouterr().out
    assert sync_secrets.main(["verify"], vault=RecordingVault(json.dumps({"apiKey": "k"}))) == 1


def test_rules_policy():
    rules = build_rules()

    for collection in ("teams", "matches", "questions"):
        assert f"match /{collection}/{{docId}}" in rules
    assert "match /predictionAnswers/{answerId}" in rules
    assert "request.resource.data.userId == request.auth.uid" in rules
    assert "hasAny(['isCorrect', 'pointsEarned'])" in rules
    assert "affectedKeys().hasOnly(['answer', 'updatedAt'])" in rules
    assert "match /leaderboardEntries/{entryId}" in rules
    assert rules.count("{") == rules.count("}")


def test_write_rules(tmp_path):
    path = write_rules(tmp_path / "firestore.rules")
    assert path.read_text(encoding="utf-8") == build_rules()
