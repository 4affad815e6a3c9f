# pages/2_📊_Leaderboard.py
import streamlit as st

from utils import db as store
from utils.leaderboard import load_leaderboard
from utils.scoring import overall_leaderboard
from utils.ui import get_db, match_label

st.set_page_config(page_title="Leaderboard", page_icon="📊", layout="wide")


def main():
    st.title("📊 Leaderboard")
    db = get_db()

    completed = store.list_matches(db, status="completed")
    views = {"Season (overall)": None}
    views.update({match_label(m): m["id"] for m in reversed(completed)})
    choice = st.selectbox("Leaderboard", list(views))
    match_id = views[choice]

    if match_id is None:
        lb = load_leaderboard(db)
    else:
        lb = overall_leaderboard(store.list_match_answers(db, match_id), store.list_users(db))

    if lb.empty:
        st.info("No scores yet. Once results are entered, scores will appear here.")
        return

    st.dataframe(
        lb.drop(columns=["userId"]),
        use_container_width=True,
        hide_index=True,
    )

    csv = lb.to_csv(index=False).encode("utf-8")
    st.download_button("Download Leaderboard (CSV)", csv, "leaderboard.csv", "text/csv")


if __name__ == "__main__":
    main()
