# utils/scoring.py
import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from config import COLLECTIONS, DEFAULT_QUESTION_POINTS, HIGHEST_TOTAL_TOLERANCE
from utils import db as store
from utils.eligibility import to_utc

logger = logging.getLogger(__name__)

LEADERBOARD_COLUMNS = [
    "rank", "userId", "displayName", "points", "correctPredictions",
    "totalPredictions", "accuracy", "matchesPlayed",
]


def _normalise(value: Any) -> str:
    return str(value).strip().lower() if value is not None else ""


def evaluate_answer(question: Dict[str, Any], user_answer: Any, correct_answer: Any) -> Tuple[bool, int]:
    """Returns (is_correct, points_earned) for one answer."""
    if not _normalise(user_answer) or not _normalise(correct_answer):
        return False, 0

    points = int(question.get("points") or DEFAULT_QUESTION_POINTS)
    penalty = int(question.get("negativePoints") or 0)

    if question.get("type") == "highestTotal":
        try:
            is_correct = abs(int(str(user_answer).strip()) - int(str(correct_answer).strip())) <= HIGHEST_TOTAL_TOLERANCE
        except ValueError:
            is_correct = False
    else:
        is_correct = _normalise(user_answer) == _normalise(correct_answer)

    return is_correct, (points if is_correct else -penalty)


def score_match(db, match_id: str, correct_answers: Dict[str, str]) -> int:
    """Evaluate every stored answer for a match. Returns how many answers were scored."""
    questions = {q["id"]: q for q in store.list_questions(db, active_only=False)}
    answers = store.list_match_answers(db, match_id)
    col = db.collection(COLLECTIONS["answers"])

    def apply(batch, answer):
        question = questions.get(answer.get("questionId"), {})
        is_correct, points = evaluate_answer(question, answer.get("answer"), correct_answers.get(answer.get("questionId")))
        batch.update(col.document(answer["id"]), {"isCorrect": is_correct, "pointsEarned": points})

    scored = store.commit_in_batches(db, answers, apply)
    store.mark_result_evaluated(db, match_id)
    logger.info("Scored %d answers for match %s", scored, match_id)
    return scored


def answers_frame(answers: List[Dict[str, Any]], users: Optional[List[Dict[str, Any]]] = None) -> pd.DataFrame:
    """
    Per-answer rows with points and the user's display name. Blank answers are dropped.
    `scored` is False for answers not yet evaluated against a match result.
    """
    cols = ["userId", "matchId", "questionId", "answer", "scored", "isCorrect", "pointsEarned", "displayName"]
    if not answers:
        return pd.DataFrame(columns=cols)

    df = pd.DataFrame(answers)
    df["scored"] = df["isCorrect"].notna() if "isCorrect" in df.columns else False
    for c, default in (("answer", ""), ("isCorrect", False), ("pointsEarned", 0)):
        if c not in df.columns:
            df[c] = default
    df["answer"] = df["answer"].fillna("").astype(str)
    df = df[df["answer"].str.strip() != ""].copy()
    df["isCorrect"] = df["isCorrect"].fillna(False).astype(bool)
    df["pointsEarned"] = pd.to_numeric(df["pointsEarned"], errors="coerce").fillna(0).astype(int)

    names = {u["id"]: u.get("displayName") or u.get("email") or "Anonymous User" for u in (users or [])}
    df["displayName"] = df["userId"].map(names).fillna("Anonymous User")
    return df[cols].reset_index(drop=True)


def overall_leaderboard(answers: List[Dict[str, Any]], users: Optional[List[Dict[str, Any]]] = None) -> pd.DataFrame:
    """Aggregate scored answers into a leaderboard: points, correct/total, accuracy, matches played, rank."""
    df = answers_frame(answers, users)
    df = df[df["scored"].astype(bool)]
    if df.empty:
        return pd.DataFrame(columns=LEADERBOARD_COLUMNS)

    lb = df.groupby(["userId", "displayName"], as_index=False).agg(
        points=("pointsEarned", "sum"),
        correctPredictions=("isCorrect", "sum"),
        totalPredictions=("answer", "count"),
        matchesPlayed=("matchId", "nunique"),
    )
    lb["correctPredictions"] = lb["correctPredictions"].astype(int)
    lb["accuracy"] = (lb["correctPredictions"] * 100 / lb["totalPredictions"]).round().astype(int)

    lb = lb.sort_values(
        ["points", "correctPredictions", "displayName"], ascending=[False, False, True]
    ).reset_index(drop=True)
    # Add rank with ties
    lb["rank"] = lb["points"].rank(method="min", ascending=False).astype(int)
    return lb[LEADERBOARD_COLUMNS]


def week_label(value) -> str:
    year, week, _ = to_utc(value).isocalendar()
    return f"{year}-W{week:02d}"


def weekly_winners(
    answers: List[Dict[str, Any]],
    users: Optional[List[Dict[str, Any]]],
    matches: List[Dict[str, Any]],
) -> Tuple[pd.DataFrame, Dict[str, pd.DataFrame]]:
    """Returns (weekly_totals, winners_by_week). Weeks are ISO weeks of the match start."""
    df = answers_frame(answers, users)
    df = df[df["scored"].astype(bool)].copy()
    weeks = {m["id"]: week_label(m["date"]) for m in matches if m.get("date")}
    if df.empty:
        return pd.DataFrame(), {}

    df["week"] = df["matchId"].map(weeks)
    df = df.dropna(subset=["week"])
    if df.empty:
        return pd.DataFrame(), {}

    weekly = df.groupby(["userId", "displayName", "week"], as_index=False)["pointsEarned"].sum()
    weekly = weekly.rename(columns={"pointsEarned": "points"})

    winners_by_week = {}
    for week, sub in weekly.groupby("week"):
        top = sub["points"].max()
        winners = sub[sub["points"] == top].sort_values("displayName")
        winners_by_week[week] = winners.reset_index(drop=True)

    weekly_totals = weekly.sort_values(["week", "points"], ascending=[True, False]).reset_index(drop=True)
    return weekly_totals, winners_by_week
