# pages/3_🗓️_Weekly_Winners.py
import streamlit as st

from utils import db as store
from utils.scoring import weekly_winners
from utils.ui import get_db

st.set_page_config(page_title="Weekly Winners", page_icon="🗓️", layout="wide")


def main():
    st.title("🗓️ Weekly Winners")
    db = get_db()

    weekly_totals, winners_by_week = weekly_winners(
        store.list_answers(db), store.list_users(db), store.list_matches(db, status="completed")
    )

    if weekly_totals.empty:
        st.info("No weekly scores yet. Enter results to see weekly standings.")
        return

    for w in sorted(winners_by_week, reverse=True):
        st.subheader(f"Week {w}")
        winners = winners_by_week[w]

        # Winners (could be multiple ties)
        st.markdown("**Winner(s):**")
        st.dataframe(winners[["displayName", "points"]], use_container_width=True, hide_index=True)

        # Full table for that week
        st.markdown("**All Scores:**")
        sub = weekly_totals[weekly_totals["week"] == w][["displayName", "points"]]
        st.dataframe(sub, use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
