# utils/auth.py
"""
Auth gate: Firebase Authentication for sign-in, Firestore for profiles and roles.

Passwords are checked by the Identity Toolkit REST API; this module never
sees or stores them beyond the request. Admin checks read users/{uid}.role
and fail closed. They are a convenience for the UI; Firestore security
rules (scripts/generate_firestore_rules.py) are the real boundary.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from config import ROLES
from utils import db as store

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

FRIENDLY_ERRORS = {
    "EMAIL_NOT_FOUND": "No account found with that email.",
    "INVALID_PASSWORD": "Incorrect password.",
    "INVALID_LOGIN_CREDENTIALS": "Incorrect email or password.",
    "USER_DISABLED": "This account has been disabled.",
    "EMAIL_EXISTS": "An account with that email already exists.",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
    "INVALID_EMAIL": "Please enter a valid email address.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
}


class AuthError(Exception):
    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or FRIENDLY_ERRORS.get(code.split(" :")[0], code))
        self.code = code


class AdminRequiredError(PermissionError):
    def __init__(self, uid: Optional[str]):
        super().__init__("You don't have permission to perform this action.")
        self.uid = uid


@dataclass
class AuthSession:
    uid: str
    email: str
    id_token: str
    refresh_token: str
    display_name: Optional[str] = None


class IdentityClient:
    """Minimal client for the Firebase Identity Toolkit REST API."""

    def __init__(self, api_key: str, session: Optional[requests.Session] = None, timeout: int = 15):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{IDENTITY_TOOLKIT_URL}/accounts:{endpoint}"
        try:
            resp = self.session.post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Identity provider request %s failed: %s", endpoint, exc)
            raise AuthError("UNAVAILABLE", "Sign-in service is unavailable. Please try again.") from exc

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            # proxies answer with HTML error pages
            data = {}
        if resp.status_code != 200:
            code = (data.get("error") or {}).get("message", f"HTTP_{resp.status_code}")
            logger.info("Identity provider rejected %s: %s", endpoint, code)
            raise AuthError(code)
        return data

    def _session(self, data: Dict[str, Any]) -> AuthSession:
        return AuthSession(
            uid=data["localId"],
            email=data.get("email", ""),
            id_token=data.get("idToken", ""),
            refresh_token=data.get("refreshToken", ""),
            display_name=data.get("displayName") or None,
        )

    def sign_in(self, email: str, password: str) -> AuthSession:
        return self._session(self._post("signInWithPassword", {
            "email": email, "password": password, "returnSecureToken": True,
        }))

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> AuthSession:
        session = self._session(self._post("signUp", {
            "email": email, "password": password, "returnSecureToken": True,
        }))
        if display_name:
            self._post("update", {"idToken": session.id_token, "displayName": display_name, "returnSecureToken": False})
            session.display_name = display_name
        return session


def sign_in(db, identity: IdentityClient, email: str, password: str) -> Dict[str, Any]:
    """Check credentials with the identity provider, then refresh the user's profile document."""
    email = email.strip().lower()
    session = identity.sign_in(email, password)
    logger.info("User %s signed in", session.uid)
    return store.upsert_user_profile(db, session.uid, session.email or email, session.display_name)


def register(db, identity: IdentityClient, email: str, password: str, display_name: str) -> Dict[str, Any]:
    email = email.strip().lower()
    session = identity.sign_up(email, password, display_name.strip())
    logger.info("Registered user %s", session.uid)
    return store.upsert_user_profile(db, session.uid, session.email or email, display_name)


def is_admin(db, uid: Optional[str]) -> bool:
    if not uid:
        return False
    try:
        user = store.get_user(db, uid)
    except Exception:
        logger.exception("Could not check admin status for %s", uid)
        return False
    return bool(user) and user.get("role") == "admin"


def require_admin(db, uid: Optional[str]) -> None:
    """Call before every admin mutation."""
    if not is_admin(db, uid):
        logger.warning("Admin action refused for user %s", uid)
        raise AdminRequiredError(uid)


def set_user_role(db, actor_uid: str, uid: str, role: str) -> None:
    require_admin(db, actor_uid)
    if role not in ROLES:
        raise ValueError(f"role must be one of {', '.join(ROLES)}")
    if uid == actor_uid and role != "admin":
        raise ValueError("You cannot remove your own admin role.")
    store.update_user_role(db, uid, role)
    logger.info("User %s set role of %s to %s", actor_uid, uid, role)
