# utils/ui.py
"""Streamlit glue shared by app.py and the pages: cached clients and sign-in guards."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import streamlit as st
from dotenv import load_dotenv

import config
from utils import auth
from utils.client_config import KeyVaultSecretSource, resolve_client_config
from utils.eligibility import to_utc
from utils.firebase import create_firestore_client


@st.cache_resource
def get_db():
    load_dotenv()
    config.configure_logging()
    return create_firestore_client()


@st.cache_resource
def get_client_config() -> Dict[str, Any]:
    load_dotenv()
    return resolve_client_config(vault=KeyVaultSecretSource(), allow_fallback=config.fallback_allowed())


@st.cache_resource
def get_identity() -> auth.IdentityClient:
    return auth.IdentityClient(get_client_config()["apiKey"])


def current_user() -> Optional[Dict[str, Any]]:
    return st.session_state.get("user")


def require_sign_in() -> Dict[str, Any]:
    user = current_user()
    if not user:
        st.warning("Please sign in on the Home page first.")
        st.stop()
    return user


def require_admin_page(db) -> Dict[str, Any]:
    """Re-reads the role from Firestore on every run; a stale session flag is not enough."""
    user = require_sign_in()
    if not auth.is_admin(db, user["id"]):
        st.error("Access denied. Admins only.")
        st.stop()
    return user


def format_match_time(value) -> str:
    if not value:
        return "TBD"
    return to_utc(value).strftime("%a %d %b %Y, %H:%M UTC")


def match_label(match: Dict[str, Any]) -> str:
    return f'{match.get("team1", "?")} vs {match.get("team2", "?")} · {format_match_time(match.get("date"))}'


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def stored_runs(value) -> int:
    """A saved highest-total answer as a number input default; anything unparseable starts at 0."""
    text = str(value or "").strip()
    return int(text) if text.isdigit() else 0
