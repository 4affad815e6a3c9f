# utils/leaderboard.py
"""
Stored leaderboards live under leaderboards/{id}/leaderboardEntries.

They are derived data: `rebuild_leaderboard` recomputes them from
predictionAnswers and `reset_leaderboard` throws them away. Neither ever
touches the answers themselves.
"""

import logging
from typing import Optional

import pandas as pd
from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError

from config import BATCH_LIMIT, COLLECTIONS, GLOBAL_LEADERBOARD_ID
from utils import db as store
from utils.scoring import LEADERBOARD_COLUMNS, overall_leaderboard

logger = logging.getLogger(__name__)


class LeaderboardResetError(Exception):
    """A batch commit failed part-way through a reset. `deleted` entries are already gone."""

    def __init__(self, leaderboard_id: str, deleted: int, total: int):
        super().__init__(
            f"Reset of leaderboard '{leaderboard_id}' failed after deleting {deleted} of {total} entries"
        )
        self.leaderboard_id = leaderboard_id
        self.deleted = deleted
        self.total = total


def match_leaderboard_id(match_id: str) -> str:
    return f"match_{match_id}"


def reset_leaderboard(db, leaderboard_id: str = GLOBAL_LEADERBOARD_ID, batch_limit: int = BATCH_LIMIT) -> int:
    """
    Delete every entry of a leaderboard and return how many were deleted.

    Admin checks and confirmation belong to the caller. Batches are committed
    one after another; if one fails the rest are skipped and
    LeaderboardResetError reports how far we got. Running it again is safe.
    """
    snapshots = list(store.leaderboard_entries(db, leaderboard_id).stream())
    total = len(snapshots)
    if not snapshots:
        logger.info("Leaderboard '%s' is already empty", leaderboard_id)
        return 0

    deleted = 0
    for chunk in store.chunked(snapshots, batch_limit):
        batch = db.batch()
        for snap in chunk:
            batch.delete(snap.reference)
        try:
            batch.commit()
        except GoogleAPIError as exc:
            logger.error("Leaderboard '%s' reset aborted after %d of %d deletions: %s", leaderboard_id, deleted, total, exc)
            raise LeaderboardResetError(leaderboard_id, deleted, total) from exc
        deleted += len(chunk)
        logger.debug("Leaderboard '%s': deleted %d/%d", leaderboard_id, deleted, total)

    logger.info("Reset leaderboard '%s': deleted %d entries", leaderboard_id, deleted)
    return deleted


def rebuild_leaderboard(db, leaderboard_id: str = GLOBAL_LEADERBOARD_ID, match_id: Optional[str] = None) -> int:
    """Replace the entries with ones recomputed from prediction answers (all matches, or one). Returns entries written."""
    reset_leaderboard(db, leaderboard_id)
    answers = store.list_match_answers(db, match_id) if match_id else store.list_answers(db)
    lb = overall_leaderboard(answers, store.list_users(db))
    entries = store.leaderboard_entries(db, leaderboard_id)

    def apply(batch, row):
        batch.set(entries.document(row["userId"]), {
            "userId": row["userId"],
            "displayName": row["displayName"],
            "totalPoints": int(row["points"]),
            "correctPredictions": int(row["correctPredictions"]),
            "totalPredictions": int(row["totalPredictions"]),
            "accuracy": int(row["accuracy"]),
            "matchesPlayed": int(row["matchesPlayed"]),
            "position": int(row["rank"]),
            "lastUpdated": firestore.SERVER_TIMESTAMP,
        })

    written = store.commit_in_batches(db, lb.to_dict("records"), apply)
    db.collection(COLLECTIONS["leaderboards"]).document(leaderboard_id).set({
        "type": "match" if match_id else "season",
        "matchId": match_id,
        "entryCount": written,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }, merge=True)
    logger.info("Rebuilt leaderboard '%s' with %d entries", leaderboard_id, written)
    return written


def load_leaderboard(db, leaderboard_id: str = GLOBAL_LEADERBOARD_ID) -> pd.DataFrame:
    """Stored entries as a frame in display order, with tied ranks."""
    entries = store.list_leaderboard_entries(db, leaderboard_id)
    if not entries:
        return pd.DataFrame(columns=LEADERBOARD_COLUMNS)

    lb = pd.DataFrame(entries).rename(columns={"totalPoints": "points"})
    for c in LEADERBOARD_COLUMNS:
        if c not in lb.columns:
            lb[c] = 0
    lb = lb.sort_values(["points", "correctPredictions", "displayName"], ascending=[False, False, True]).reset_index(drop=True)
    lb["rank"] = lb["points"].rank(method="min", ascending=False).astype(int)
    return lb[LEADERBOARD_COLUMNS]
