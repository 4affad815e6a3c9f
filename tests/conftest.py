from datetime import datetime, timezone

import pytest

from fakes import FakeFirestore

NOW = datetime(2025, 4, 10, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def firebase_env():
    return {
        "FIREBASE_API_KEY": "AIza-test-key",
        "FIREBASE_AUTH_DOMAIN": "ipl-test.firebaseapp.com",
        "FIREBASE_PROJECT_ID": "ipl-test",
        "FIREBASE_STORAGE_BUCKET": "ipl-test.appspot.com",
        "FIREBASE_MESSAGING_SENDER_ID": "1234567890",
        "FIREBASE_APP_ID": "1:1234567890:web:abcdef",
    }
