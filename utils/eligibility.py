# utils/eligibility.py
"""
When may a user submit (or withdraw) predictions for a match?

Everything here is a pure function of the values passed in. Callers must
pass the current time on every check; nothing is cached because `now`
keeps moving.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from config import PREDICTION_WINDOW, RESET_CUTOFF

DateLike = Union[datetime, str]


def to_utc(value: DateLike) -> datetime:
    """Return an aware UTC datetime. Naive values and ISO strings without an offset are taken as UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise TypeError(f"Expected a datetime or ISO string, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def time_until_start(now: DateLike, match_start: DateLike) -> timedelta:
    return to_utc(match_start) - to_utc(now)


def is_prediction_open(
    now: DateLike,
    match_start: DateLike,
    admin_override: bool = False,
    window: timedelta = PREDICTION_WINDOW,
) -> bool:
    """
    Predictions are open while the match is less than `window` away
    (boundary inclusive), or at any earlier time if an admin enabled them.
    Once the match has started they are closed, override or not.
    """
    remaining = time_until_start(now, match_start)
    if remaining <= timedelta(0):
        return False
    if admin_override:
        return True
    return remaining <= window


def match_prediction_open(match: Dict[str, Any], now: Optional[DateLike] = None) -> bool:
    """Apply `is_prediction_open` to a match document. Live and completed matches are always closed."""
    if (match.get("status") or "upcoming") != "upcoming":
        return False
    if not match.get("date"):
        return False
    now = now if now is not None else datetime.now(timezone.utc)
    return is_prediction_open(now, match["date"], match.get("isPredictionEnabledByAdmin") is True)


def can_reset_predictions(now: DateLike, match_start: DateLike, cutoff: timedelta = RESET_CUTOFF) -> bool:
    return time_until_start(now, match_start) > cutoff


def window_label(match: Dict[str, Any], now: Optional[DateLike] = None) -> str:
    """Short human label for the prediction status of a match."""
    now = now if now is not None else datetime.now(timezone.utc)
    if match_prediction_open(match, now):
        if match.get("isPredictionEnabledByAdmin") is True and time_until_start(now, match["date"]) > PREDICTION_WINDOW:
            return "Open (admin override)"
        return "Open"
    status = match.get("status") or "upcoming"
    if status != "upcoming" or not match.get("date") or time_until_start(now, match["date"]) <= timedelta(0):
        return "Closed"
    return f"Opens {int(PREDICTION_WINDOW.total_seconds() // 3600)}h before start"
