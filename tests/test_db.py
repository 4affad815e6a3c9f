from datetime import timedelta

import pytest

from utils import db as store


def add_match(db, start, **fields):
    match = {"team1": "Mumbai Indians", "team2": "Chennai Super Kings", "venue": "Wankhede", "date": start}
    match.update(fields)
    return store.create_match(db, match)


def test_save_answers_inside_window(db, now):
    match_id = add_match(db, now + timedelta(hours=2))

    ids = store.save_prediction_answers(db, "u1", match_id, {"q1": " Mumbai Indians ", "q2": "", "q3": None}, now=now)

    assert ids == [f"u1_{match_id}_q1"]
    saved = store.get_user_answers(db, "u1", match_id)
    assert len(saved) == 1
    assert saved[0]["answer"] == "Mumbai Indians"
    assert saved[0]["questionId"] == "q1"


def test_resubmitting_overwrites_the_same_answer(db, now):
    match_id = add_match(db, now + timedelta(hours=2))
    store.save_prediction_answers(db, "u1", match_id, {"q1": "MI"}, now=now)
    store.save_prediction_answers(db, "u1", match_id, {"q1": "CSK"}, now=now)

    saved = store.get_user_answers(db, "u1", match_id)
    assert [a["answer"] for a in saved] == ["CSK"]


def test_save_answers_outside_window_is_rejected(db, now):
    match_id = add_match(db, now + timedelta(hours=30))

    with pytest.raises(store.PredictionWindowClosedError):
        store.save_prediction_answers(db, "u1", match_id, {"q1": "MI"}, now=now)
    assert store.list_answers(db) == []


def test_admin_override_allows_early_answers(db, now):
    match_id = add_match(db, now + timedelta(days=3))
    store.set_prediction_override(db, match_id, True)

    assert store.save_prediction_answers(db, "u1", match_id, {"q1": "MI"}, now=now)


def test_override_does_not_allow_answers_after_start(db, now):
    match_id = add_match(db, now - timedelta(minutes=1), isPredictionEnabledByAdmin=True)

    with pytest.raises(store.PredictionWindowClosedError):
        store.save_prediction_answers(db, "u1", match_id, {"q1": "MI"}, now=now)


def test_unknown_match(db, now):
    with pytest.raises(store.MatchNotFoundError):
        store.save_prediction_answers(db, "u1", "nope", {"q1": "MI"}, now=now)
    with pytest.raises(store.MatchNotFoundError):
        store.set_prediction_override(db, "nope", True)


def test_reset_predictions_only_touches_own_answers(db, now):
    match_id = add_match(db, now + timedelta(minutes=30))
    store.save_prediction_answers(db, "u1", match_id, {"q1": "MI", "q2": "300"}, now=now)
    store.save_prediction_answers(db, "u2", match_id, {"q1": "CSK"}, now=now)

    assert store.reset_user_predictions(db, "u1", match_id, now=now + timedelta(minutes=20)) == 2
    assert store.get_user_answers(db, "u1", match_id) == []
    assert len(store.get_user_answers(db, "u2", match_id)) == 1


def test_reset_with_nothing_saved_returns_zero(db, now):
    match_id = add_match(db, now + timedelta(hours=1))
    assert store.reset_user_predictions(db, "u1", match_id, now=now) == 0
    assert db.commits == []


def test_reset_refused_inside_last_five_minutes(db, now):
    match_id = add_match(db, now + timedelta(minutes=30))
    store.save_prediction_answers(db, "u1", match_id, {"q1": "MI"}, now=now)

    with pytest.raises(store.PredictionResetNotAllowedError):
        store.reset_user_predictions(db, "u1", match_id, now=now + timedelta(minutes=26))
    assert len(store.get_user_answers(db, "u1", match_id)) == 1


def test_profile_upsert_creates_user_then_keeps_role(db):
    profile = store.upsert_user_profile(db, "u1", " Virat@Example.com ")
    assert profile["role"] == "user"
    assert profile["email"] == "virat@example.com"
    assert profile["displayName"] == "virat"

    store.update_user_role(db, "u1", "admin")
    profile = store.upsert_user_profile(db, "u1", "virat@example.com", "Virat K")

    assert profile["role"] == "admin"
    assert profile["displayName"] == "Virat K"


def test_matches_sorted_by_start_and_filtered_by_status(db, now):
    later = add_match(db, now + timedelta(days=2))
    sooner = add_match(db, now + timedelta(days=1))
    done = add_match(db, now - timedelta(days=1), status="completed")

    assert [m["id"] for m in store.list_matches(db)] == [done, sooner, later]
    assert [m["id"] for m in store.list_matches(db, status="upcoming")] == [sooner, later]


def test_save_match_result_completes_match(db, now):
    match_id = add_match(db, now - timedelta(hours=4))
    store.save_match_result(db, match_id, "Mumbai Indians", {"q1": "Mumbai Indians"}, "admin1")

    assert store.get_match(db, match_id)["status"] == "completed"
    result = store.get_match_result(db, match_id)
    assert result["predictionResults"] == {"q1": "Mumbai Indians"}
    assert result["isEvaluated"] is False


def test_teams_are_keyed_by_name(db):
    teams = [{"name": "Mumbai Indians", "squad": []}, {"name": "Royal Challengers Bengaluru", "squad": []}]
    assert store.upsert_teams(db, teams) == 2
    assert store.upsert_teams(db, teams[:1]) == 1

    assert [t["id"] for t in store.list_teams(db)] == ["mumbai-indians", "royal-challengers-bengaluru"]


def test_commit_in_batches_respects_limit(db):
    col = db.collection("scratch")
    written = store.commit_in_batches(db, range(1001), lambda batch, i: batch.set(col.document(str(i)), {"i": i}))

    assert written == 1001
    assert db.commits == [500, 500, 1]


def test_question_subscription_delivers_updates_until_unsubscribed(db):
    seen = []
    sub = store.subscribe_questions(db, seen.append)
    assert seen == [[]]

    store.create_question(db, {"text": "Who will win?", "type": "matchWinner"})
    assert [q["text"] for q in seen[-1]] == ["Who will win?"]

    sub.unsubscribe()
    sub.unsubscribe()
    assert not sub.active
    calls = len(seen)
    store.create_question(db, {"text": "Highest total?", "type": "highestTotal"})
    assert len(seen) == calls


def test_subscription_as_context_manager(db):
    seen = []
    with store.subscribe_questions(db, seen.append) as sub:
        assert sub.active
    assert not sub.active
    assert db.watches == []


def test_inactive_questions_hidden_by_default(db):
    qid = store.create_question(db, {"text": "Most sixes?", "type": "moreSixes"})
    store.update_question(db, qid, {"isActive": False})

    assert store.list_questions(db) == []
    assert [q["id"] for q in store.list_questions(db, active_only=False)] == [qid]
