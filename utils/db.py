# utils/db.py
"""
Cloud Firestore data access layer for the IPL Fanatics Predictor.

- Every function takes the Firestore client as its first argument; nothing
  here creates a client (see utils/firebase.py).
- All functions return plain Python types (dicts with an "id" key, lists)
  so results are pandas/Streamlit-friendly.
- SDK errors propagate to the caller; pages decide how to show them.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from firebase_admin import firestore

from config import BATCH_LIMIT, COLLECTIONS, DEFAULT_QUESTION_POINTS
from utils.eligibility import can_reset_predictions, match_prediction_open, to_utc

logger = logging.getLogger(__name__)


class MatchNotFoundError(LookupError):
    def __init__(self, match_id: str):
        super().__init__(f"Match {match_id} not found")
        self.match_id = match_id


class PredictionWindowClosedError(Exception):
    def __init__(self, match_id: str):
        super().__init__("Predictions for this match are closed. They open 24 hours before the start.")
        self.match_id = match_id


class PredictionResetNotAllowedError(Exception):
    def __init__(self, match_id: str):
        super().__init__("Predictions can only be reset until 5 minutes before the match starts.")
        self.match_id = match_id


# ----------------------------
# Helpers
# ----------------------------

def _to_dict(snapshot) -> Dict[str, Any]:
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def _now() -> datetime:
    return datetime.now(timezone.utc)


def chunked(items: List[Any], size: int = BATCH_LIMIT) -> Iterator[List[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def commit_in_batches(db, items: Iterable[Any], apply: Callable[[Any, Any], None], limit: int = BATCH_LIMIT) -> int:
    """
    Write `items` with as few batches as the per-batch limit allows.
    `apply(batch, item)` must add exactly one write per item.
    Batches are committed in order; the first failing commit propagates.
    """
    written = 0
    for chunk in chunked(list(items), limit):
        batch = db.batch()
        for item in chunk:
            apply(batch, item)
        batch.commit()
        written += len(chunk)
    return written


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")


def _sort_by_date(matches: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    far_future = datetime.max.replace(tzinfo=timezone.utc)
    return sorted(matches, key=lambda m: (to_utc(m["date"]) if m.get("date") else far_future, m["id"]))


# ----------------------------
# Users
# ----------------------------

def get_user(db, uid: str) -> Optional[Dict[str, Any]]:
    snap = db.collection(COLLECTIONS["users"]).document(uid).get()
    return _to_dict(snap) if snap.exists else None


def list_users(db) -> List[Dict[str, Any]]:
    users = [_to_dict(s) for s in db.collection(COLLECTIONS["users"]).stream()]
    return sorted(users, key=lambda u: (u.get("displayName") or u.get("email") or "").lower())


def upsert_user_profile(
    db,
    uid: str,
    email: str,
    display_name: Optional[str] = None,
    photo_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Create the profile on first sign-in, refresh it on every later one. Never touches `role` once set."""
    ref = db.collection(COLLECTIONS["users"]).document(uid)
    existing = ref.get()
    email = email.strip().lower()

    data: Dict[str, Any] = {
        "uid": uid,
        "email": email,
        "lastLogin": firestore.SERVER_TIMESTAMP,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }
    if display_name:
        data["displayName"] = display_name.strip()
    if photo_url:
        data["photoURL"] = photo_url
    if not existing.exists:
        data["createdAt"] = firestore.SERVER_TIMESTAMP
        data["role"] = "user"
        data.setdefault("displayName", email.split("@")[0])

    ref.set(data, merge=True)
    return get_user(db, uid)


def update_user_role(db, uid: str, role: str) -> None:
    db.collection(COLLECTIONS["users"]).document(uid).set(
        {"uid": uid, "role": role, "updatedAt": firestore.SERVER_TIMESTAMP},
        merge=True,
    )


# ----------------------------
# Teams
# ----------------------------

def list_teams(db) -> List[Dict[str, Any]]:
    teams = [_to_dict(s) for s in db.collection(COLLECTIONS["teams"]).stream()]
    return sorted(teams, key=lambda t: (t.get("name") or "").lower())


def upsert_teams(db, teams: List[Dict[str, Any]]) -> int:
    """teams: dicts with at least a "name" key. The document id is derived from the name, so re-uploads update."""
    col = db.collection(COLLECTIONS["teams"])

    def apply(batch, team):
        payload = dict(team)
        payload["updatedAt"] = firestore.SERVER_TIMESTAMP
        batch.set(col.document(slugify(team["name"])), payload, merge=True)

    return commit_in_batches(db, teams, apply)


def delete_team(db, team_id: str) -> None:
    db.collection(COLLECTIONS["teams"]).document(team_id).delete()


# ----------------------------
# Matches
# ----------------------------

def list_matches(db, status: Optional[str] = None) -> List[Dict[str, Any]]:
    """Matches ordered by start time (sorted client-side to avoid a composite index)."""
    query = db.collection(COLLECTIONS["matches"])
    if status:
        query = query.where("status", "==", status)
    return _sort_by_date([_to_dict(s) for s in query.stream()])


def get_match(db, match_id: str) -> Optional[Dict[str, Any]]:
    snap = db.collection(COLLECTIONS["matches"]).document(match_id).get()
    return _to_dict(snap) if snap.exists else None


def _match_payload(match: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "team1": match["team1"],
        "team2": match["team2"],
        "venue": match.get("venue", ""),
        "date": to_utc(match["date"]),
        "status": match.get("status") or "upcoming",
        "isPredictionEnabledByAdmin": bool(match.get("isPredictionEnabledByAdmin", False)),
        "createdAt": firestore.SERVER_TIMESTAMP,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }


def create_match(db, match: Dict[str, Any]) -> str:
    ref = db.collection(COLLECTIONS["matches"]).document()
    ref.set(_match_payload(match))
    logger.info("Created match %s: %s vs %s", ref.id, match["team1"], match["team2"])
    return ref.id


def create_matches(db, matches: List[Dict[str, Any]]) -> int:
    col = db.collection(COLLECTIONS["matches"])

    def apply(batch, match):
        batch.set(col.document(), _match_payload(match))

    return commit_in_batches(db, matches, apply)


def update_match(db, match_id: str, fields: Dict[str, Any]) -> None:
    ref = db.collection(COLLECTIONS["matches"]).document(match_id)
    if not ref.get().exists:
        raise MatchNotFoundError(match_id)
    payload = dict(fields)
    if "date" in payload:
        payload["date"] = to_utc(payload["date"])
    payload["updatedAt"] = firestore.SERVER_TIMESTAMP
    ref.update(payload)


def set_prediction_override(db, match_id: str, enabled: bool) -> None:
    update_match(db, match_id, {"isPredictionEnabledByAdmin": bool(enabled)})
    logger.info("Predictions %s by admin for match %s", "enabled" if enabled else "disabled", match_id)


# ----------------------------
# Questions
# ----------------------------

class Subscription:
    """
    Cancellation handle for a Firestore listener.

    Call `unsubscribe()` on teardown (it is safe to call twice), or use the
    handle as a context manager.
    """

    def __init__(self, watch):
        self._watch = watch

    @property
    def active(self) -> bool:
        return self._watch is not None

    def unsubscribe(self) -> None:
        if self._watch is not None:
            watch, self._watch = self._watch, None
            watch.unsubscribe()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()
        return False


def _questions_query(db, active_only: bool):
    query = db.collection(COLLECTIONS["questions"])
    if active_only:
        query = query.where("isActive", "==", True)
    return query


def _sort_questions(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(questions, key=lambda q: (q.get("type") or "", q.get("text") or ""))


def list_questions(db, active_only: bool = True) -> List[Dict[str, Any]]:
    return _sort_questions([_to_dict(s) for s in _questions_query(db, active_only).stream()])


def subscribe_questions(db, callback: Callable[[List[Dict[str, Any]]], None], active_only: bool = True) -> Subscription:
    """Push the full (sorted) question list to `callback` on every change."""

    def on_snapshot(docs, changes, read_time):
        callback(_sort_questions([_to_dict(d) for d in docs]))

    return Subscription(_questions_query(db, active_only).on_snapshot(on_snapshot))


def create_question(db, question: Dict[str, Any]) -> str:
    ref = db.collection(COLLECTIONS["questions"]).document()
    ref.set({
        "text": question["text"].strip(),
        "type": question.get("type") or "custom",
        "points": int(question.get("points") or DEFAULT_QUESTION_POINTS),
        "negativePoints": int(question.get("negativePoints") or 0),
        "options": list(question.get("options") or []),
        "isActive": question.get("isActive", True) is not False,
        "createdAt": firestore.SERVER_TIMESTAMP,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    })
    return ref.id


def update_question(db, question_id: str, fields: Dict[str, Any]) -> None:
    payload = dict(fields)
    payload["updatedAt"] = firestore.SERVER_TIMESTAMP
    db.collection(COLLECTIONS["questions"]).document(question_id).update(payload)


def delete_question(db, question_id: str) -> None:
    db.collection(COLLECTIONS["questions"]).document(question_id).delete()


# ----------------------------
# Prediction answers
# ----------------------------

def answer_id(uid: str, match_id: str, question_id: str) -> str:
    return f"{uid}_{match_id}_{question_id}"


def save_prediction_answers(
    db,
    uid: str,
    match_id: str,
    answers: Dict[str, Any],
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Upsert one answer document per question. Blank answers are skipped.
    The prediction window is checked against the stored match, not whatever
    the page rendered.
    """
    match = get_match(db, match_id)
    if match is None:
        raise MatchNotFoundError(match_id)
    if not match_prediction_open(match, now or _now()):
        raise PredictionWindowClosedError(match_id)

    col = db.collection(COLLECTIONS["answers"])
    rows = [(qid, str(value).strip()) for qid, value in answers.items() if value is not None and str(value).strip()]

    def apply(batch, row):
        question_id, value = row
        batch.set(col.document(answer_id(uid, match_id, question_id)), {
            "userId": uid,
            "matchId": match_id,
            "questionId": question_id,
            "answer": value,
            "updatedAt": firestore.SERVER_TIMESTAMP,
        }, merge=True)

    commit_in_batches(db, rows, apply)
    logger.info("Saved %d answers for user %s on match %s", len(rows), uid, match_id)
    return [answer_id(uid, match_id, qid) for qid, _ in rows]


def get_user_answers(db, uid: str, match_id: Optional[str] = None) -> List[Dict[str, Any]]:
    query = db.collection(COLLECTIONS["answers"]).where("userId", "==", uid)
    if match_id:
        query = query.where("matchId", "==", match_id)
    return [_to_dict(s) for s in query.stream()]


def list_match_answers(db, match_id: str) -> List[Dict[str, Any]]:
    query = db.collection(COLLECTIONS["answers"]).where("matchId", "==", match_id)
    return [_to_dict(s) for s in query.stream()]


def list_answers(db) -> List[Dict[str, Any]]:
    return [_to_dict(s) for s in db.collection(COLLECTIONS["answers"]).stream()]


def reset_user_predictions(db, uid: str, match_id: str, now: Optional[datetime] = None) -> int:
    """Withdraw a user's answers for a match. Returns how many were deleted (0 if none)."""
    match = get_match(db, match_id)
    if match is None:
        raise MatchNotFoundError(match_id)
    if (match.get("status") or "upcoming") != "upcoming" or not can_reset_predictions(now or _now(), match["date"]):
        raise PredictionResetNotAllowedError(match_id)

    query = (
        db.collection(COLLECTIONS["answers"])
        .where("userId", "==", uid)
        .where("matchId", "==", match_id)
    )
    snapshots = list(query.stream())
    if not snapshots:
        return 0
    deleted = commit_in_batches(db, snapshots, lambda batch, snap: batch.delete(snap.reference))
    logger.info("Reset %d predictions for user %s on match %s", deleted, uid, match_id)
    return deleted


# ----------------------------
# Match results
# ----------------------------

def save_match_result(db, match_id: str, winner: str, answers: Dict[str, str], created_by: str) -> None:
    """Store the correct answers for a match and mark it completed."""
    if get_match(db, match_id) is None:
        raise MatchNotFoundError(match_id)
    db.collection(COLLECTIONS["results"]).document(match_id).set({
        "matchId": match_id,
        "winner": winner,
        "predictionResults": dict(answers),
        "isEvaluated": False,
        "createdBy": created_by,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }, merge=True)
    update_match(db, match_id, {"status": "completed", "result": {"winner": winner}})


def get_match_result(db, match_id: str) -> Optional[Dict[str, Any]]:
    snap = db.collection(COLLECTIONS["results"]).document(match_id).get()
    return _to_dict(snap) if snap.exists else None


def mark_result_evaluated(db, match_id: str) -> None:
    db.collection(COLLECTIONS["results"]).document(match_id).set({
        "isEvaluated": True,
        "evaluatedAt": firestore.SERVER_TIMESTAMP,
    }, merge=True)


# ----------------------------
# Leaderboard entries
# ----------------------------

def leaderboard_entries(db, leaderboard_id: str):
    """Reference to leaderboards/{leaderboard_id}/leaderboardEntries."""
    return (
        db.collection(COLLECTIONS["leaderboards"])
        .document(leaderboard_id)
        .collection(COLLECTIONS["leaderboard_entries"])
    )


def list_leaderboard_entries(db, leaderboard_id: str) -> List[Dict[str, Any]]:
    return [_to_dict(s) for s in leaderboard_entries(db, leaderboard_id).stream()]
