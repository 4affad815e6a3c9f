# pages/1_🏏_Make_Predictions.py
import streamlit as st

from utils import db as store
from utils.eligibility import can_reset_predictions, match_prediction_open, window_label
from utils.ui import get_db, match_label, now_utc, require_sign_in, stored_runs

st.set_page_config(page_title="Make Predictions", page_icon="🏏", layout="wide")


def answer_input(question, match, existing, key):
    """One input widget per question type. Returns the raw answer ("" when left blank)."""
    qtype = question.get("type")
    label = f'{question["text"]} ({question.get("points", 10)} pts)'
    teams = [match.get("team1", ""), match.get("team2", "")]

    if qtype in ("matchWinner", "moreSixes"):
        options = [""] + teams + (["tie"] if qtype == "moreSixes" else [])
    elif qtype == "centuryScored":
        options = ["", "yes", "no"]
    elif question.get("options"):
        options = [""] + list(question["options"])
    else:
        options = None

    if options is not None:
        index = options.index(existing) if existing in options else 0
        return st.selectbox(label, options, index=index, key=key)
    if qtype == "highestTotal":
        value = st.number_input(label, min_value=0, step=1,
                                value=stored_runs(existing), key=key)
        return str(int(value)) if value else ""
    return st.text_input(label, value=existing or "", key=key)


def prediction_form(db, user, match, questions):
    now = now_utc()
    existing = {a["questionId"]: a.get("answer", "") for a in store.get_user_answers(db, user["id"], match["id"])}

    if not match_prediction_open(match, now):
        if existing:
            st.write("Your answers:")
            st.table([{"Question": q["text"], "Answer": existing.get(q["id"], "-")} for q in questions])
        else:
            st.info("Predictions are not open for this match.")
        return

    with st.form(f"predict_{match['id']}"):
        answers = {q["id"]: answer_input(q, match, existing.get(q["id"]), f"a_{match['id']}_{q['id']}") for q in questions}
        submitted = st.form_submit_button("💾 Save Predictions", type="primary")
    if submitted:
        try:
            saved = store.save_prediction_answers(db, user["id"], match["id"], answers, now=now_utc())
        except store.PredictionWindowClosedError as exc:
            st.error(str(exc))
            return
        st.success(f"Saved {len(saved)} answers. You can change them until the match starts.")

    if existing and can_reset_predictions(now, match["date"]):
        if st.button("Withdraw my answers", key=f"reset_{match['id']}"):
            try:
                deleted = store.reset_user_predictions(db, user["id"], match["id"], now=now_utc())
            except store.PredictionResetNotAllowedError as exc:
                st.error(str(exc))
                return
            st.success(f"Removed {deleted} answers.")
            st.rerun()


def main():
    st.title("🏏 Make Predictions")
    user = require_sign_in()
    db = get_db()

    matches = store.list_matches(db, status="upcoming")
    if not matches:
        st.warning("No upcoming matches yet. Please check back later.")
        return
    questions = store.list_questions(db, active_only=True)
    if not questions:
        st.warning("No prediction questions are active right now.")
        return

    now = now_utc()
    for match in matches:
        status = window_label(match, now)
        with st.expander(f"{match_label(match)} · {status}", expanded=match_prediction_open(match, now)):
            st.caption(match.get("venue") or "")
            prediction_form(db, user, match, questions)


if __name__ == "__main__":
    main()
