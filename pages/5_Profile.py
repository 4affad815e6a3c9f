# pages/5_👤_Profile.py
import pandas as pd
import streamlit as st

from utils import db as store
from utils.scoring import answers_frame, overall_leaderboard
from utils.ui import get_db, match_label, require_sign_in

st.set_page_config(page_title="Profile", page_icon="👤", layout="wide")


def main():
    st.title("👤 My Profile")
    user = require_sign_in()
    db = get_db()

    profile = store.get_user(db, user["id"]) or user
    st.markdown(f"**{profile.get('displayName')}** · {profile.get('email')} · role: {profile.get('role', 'user')}")

    answers = store.get_user_answers(db, user["id"])
    if not answers:
        st.info("You haven't made any predictions yet.")
        return

    stats = overall_leaderboard(answers, [profile])
    if stats.empty:
        st.info("None of your predictions have been scored yet.")
    else:
        row = stats.iloc[0]
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Points", int(row["points"]))
        c2.metric("Correct", f'{int(row["correctPredictions"])}/{int(row["totalPredictions"])}')
        c3.metric("Accuracy", f'{int(row["accuracy"])}%')
        c4.metric("Matches played", int(row["matchesPlayed"]))

    st.subheader("Prediction history")
    questions = {q["id"]: q["text"] for q in store.list_questions(db, active_only=False)}
    matches = {m["id"]: match_label(m) for m in store.list_matches(db)}
    history = answers_frame(answers, [profile])
    history = pd.DataFrame({
        "Match": history["matchId"].map(matches).fillna(history["matchId"]),
        "Question": history["questionId"].map(questions).fillna(history["questionId"]),
        "Answer": history["answer"],
        "Correct": history["isCorrect"].map({True: "yes", False: "no"}).where(history["scored"], "pending"),
        "Points": history["pointsEarned"],
    })
    st.dataframe(history, use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
