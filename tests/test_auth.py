import json

import pytest
import requests

from utils import auth
from utils import db as store


class FakeResponse:
    def __init__(self, status_code, payload=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.content)


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "params": params, "json": json})
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def signed_in(uid="u1", email="virat@example.com", name=""):
    return FakeResponse(200, {"localId": uid, "email": email, "idToken": "id-token",
                              "refreshToken": "refresh", "displayName": name})


def test_sign_in_creates_profile(db):
    session = FakeSession(signed_in())
    identity = auth.IdentityClient("api-key", session=session)

    profile = auth.sign_in(db, identity, " Virat@Example.com ", "secret1")

    assert profile["id"] == "u1"
    assert profile["role"] == "user"
    call = session.calls[0]
    assert call["url"].endswith("accounts:signInWithPassword")
    assert call["params"] == {"key": "api-key"}
    assert call["json"]["email"] == "virat@example.com"


def test_rejected_credentials_raise_friendly_error(db):
    identity = auth.IdentityClient("api-key", session=FakeSession(
        FakeResponse(400, {"error": {"message": "INVALID_PASSWORD"}}),
    ))

    with pytest.raises(auth.AuthError) as excinfo:
        auth.sign_in(db, identity, "virat@example.com", "wrong")

    assert excinfo.value.code == "INVALID_PASSWORD"
    assert str(excinfo.value) == "Incorrect password."
    assert store.list_users(db) == []


def test_detailed_error_codes_map_to_friendly_text():
    error = auth.AuthError("WEAK_PASSWORD : Password should be at least 6 characters")
    assert str(error) == auth.FRIENDLY_ERRORS["WEAK_PASSWORD"]


def test_network_failure_is_an_auth_error(db):
    identity = auth.IdentityClient("api-key", session=FakeSession(requests.ConnectionError("offline")))

    with pytest.raises(auth.AuthError) as excinfo:
        auth.sign_in(db, identity, "virat@example.com", "secret1")
    assert excinfo.value.code == "UNAVAILABLE"


def test_register_sets_display_name(db):
    session = FakeSession(signed_in(uid="u7"), FakeResponse(200, {"displayName": "Virat"}))
    identity = auth.IdentityClient("api-key", session=session)

    profile = auth.register(db, identity, "virat@example.com", "secret1", "Virat ")

    assert profile["displayName"] == "Virat"
    assert session.calls[1]["url"].endswith("accounts:update")
    assert session.calls[1]["json"]["idToken"] == "id-token"


def test_admin_checks_fail_closed(db):
    store.upsert_user_profile(db, "fan", "fan@example.com")
    store.upsert_user_profile(db, "boss", "boss@example.com")
    store.update_user_role(db, "boss", "admin")

    assert auth.is_admin(db, "boss")
    assert not auth.is_admin(db, "fan")
    assert not auth.is_admin(db, "ghost")
    assert not auth.is_admin(db, None)

    class BrokenDb:
        def collection(self, name):
            raise RuntimeError("firestore unavailable")

    assert not auth.is_admin(BrokenDb(), "boss")
    with pytest.raises(auth.AdminRequiredError):
        auth.require_admin(db, "fan")


def test_set_user_role(db):
    store.upsert_user_profile(db, "fan", "fan@example.com")
    store.upsert_user_profile(db, "boss", "boss@example.com")
    store.update_user_role(db, "boss", "admin")

    with pytest.raises(auth.AdminRequiredError):
        auth.set_user_role(db, "fan", "fan", "admin")
    with pytest.raises(ValueError):
        auth.set_user_role(db, "boss", "fan", "superuser")
    with pytest.raises(ValueError):
        auth.set_user_role(db, "boss", "boss", "user")

    auth.set_user_role(db, "boss", "fan", "admin")
    assert store.get_user(db, "fan")["role"] == "admin"


def test_html_error_page_is_an_auth_error(db):
    identity = auth.IdentityClient("api-key", session=FakeSession(
        FakeResponse(502, text="<html>Bad Gateway</html>"),
    ))

    with pytest.raises(auth.AuthError) as excinfo:
        auth.sign_in(db, identity, "virat@example.com", "secret1")
    assert excinfo.value.code == "HTTP_502"
    assert store.list_users(db) == []
