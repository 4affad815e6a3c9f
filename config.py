# config.py
import logging
import os
from datetime import timedelta

# --- IMPORTANT: EDIT THESE FOR YOUR SEASON ---
APP_TITLE = "IPL Fanatics Predictor"

# Predictions open this long before the scheduled start (admins can override).
PREDICTION_WINDOW = timedelta(hours=24)
# Users can withdraw their answers until this long before the start.
RESET_CUTOFF = timedelta(minutes=5)

# Firestore rejects write batches with more operations than this.
BATCH_LIMIT = 500

# Scoring (feel free to tune)
DEFAULT_QUESTION_POINTS = 10
HIGHEST_TOTAL_TOLERANCE = 15  # runs either side of the actual highest total
QUESTION_TYPES = [
    "matchWinner",
    "highestTotal",
    "moreSixes",
    "centuryScored",
    "topBatsman",
    "topBowler",
    "custom",
]

MATCH_STATUSES = ("upcoming", "live", "completed")
ROLES = ("user", "admin")

COLLECTIONS = {
    "users": "users",
    "teams": "teams",
    "matches": "matches",
    "questions": "questions",
    "answers": "predictionAnswers",
    "results": "matchResults",
    "leaderboards": "leaderboards",
    "leaderboard_entries": "leaderboardEntries",
}
GLOBAL_LEADERBOARD_ID = "global"

# Firebase web client configuration served to browsers / used for sign-in.
REQUIRED_FIREBASE_FIELDS = (
    "apiKey",
    "authDomain",
    "projectId",
    "storageBucket",
    "messagingSenderId",
    "appId",
)
FIREBASE_ENV_VARS = {
    "apiKey": "FIREBASE_API_KEY",
    "authDomain": "FIREBASE_AUTH_DOMAIN",
    "projectId": "FIREBASE_PROJECT_ID",
    "storageBucket": "FIREBASE_STORAGE_BUCKET",
    "messagingSenderId": "FIREBASE_MESSAGING_SENDER_ID",
    "appId": "FIREBASE_APP_ID",
    "measurementId": "FIREBASE_MEASUREMENT_ID",
}

# Azure Key Vault
DEFAULT_KEY_VAULT_NAME = "myFirebaseKeyVault"
CLIENT_CONFIG_SECRET = "clientSideFirebaseKeyVault"

# Development only. Never rely on this in production; set FIREBASE_* or fix vault access.
FALLBACK_FIREBASE_CONFIG = {
    "apiKey": "demo-api-key",
    "authDomain": "demo-ipl-predictor.firebaseapp.com",
    "projectId": "demo-ipl-predictor",
    "storageBucket": "demo-ipl-predictor.appspot.com",
    "messagingSenderId": "000000000000",
    "appId": "1:000000000000:web:0000000000000000",
}


def get_setting(name: str, default=None):
    """Read a deployment setting from the environment (a local .env is loaded by entry points)."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def get_flag(name: str, default: bool = False) -> bool:
    value = get_setting(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def app_env() -> str:
    return get_setting("APP_ENV", "development")


def key_vault_name() -> str:
    return get_setting("AZURE_KEY_VAULT_NAME", DEFAULT_KEY_VAULT_NAME)


def fallback_allowed() -> bool:
    """The hardcoded client config is never served in production."""
    if app_env() == "production":
        return False
    return get_flag("ALLOW_FALLBACK_CONFIG", default=True)


def configure_logging(level=None):
    level = level or get_setting("LOG_LEVEL", "INFO")
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
