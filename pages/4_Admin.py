# pages/4_🛠️_Admin.py
import logging
from datetime import datetime, time

import pandas as pd
import streamlit as st
from google.api_core.exceptions import GoogleAPIError

from config import MATCH_STATUSES, QUESTION_TYPES, ROLES
from utils import auth
from utils import db as store
from utils.eligibility import window_label
from utils.leaderboard import LeaderboardResetError, rebuild_leaderboard, reset_leaderboard
from utils.scoring import score_match
from utils.ui import format_match_time, get_db, match_label, now_utc, require_admin_page
from utils.validation import MatchUpload, QuestionForm, parse_matches_csv, parse_team_upload

st.set_page_config(page_title="Admin", page_icon="🛠️", layout="wide")

logger = logging.getLogger(__name__)

RESET_PHRASE = "RESET"


def run_admin_action(db, admin, action, *args, **kwargs):
    """Check the role, run `action(db, ...)`, and show any failure. Returns (ok, result)."""
    try:
        auth.require_admin(db, admin["id"])
        return True, action(db, *args, **kwargs)
    except auth.AdminRequiredError as exc:
        st.error(str(exc))
    except (store.MatchNotFoundError, ValueError) as exc:
        st.error(str(exc))
    except LeaderboardResetError as exc:
        st.error(f"{exc}. Run the reset again to finish.")
    except GoogleAPIError as exc:
        logger.exception("Admin action %s failed", getattr(action, "__name__", action))
        st.error(f"Database error: {exc}")
    return False, None


def show_errors(errors):
    st.error(f"{len(errors)} problem(s) found. Nothing was uploaded.")
    st.dataframe(pd.DataFrame(errors), use_container_width=True, hide_index=True)


def read_upload(file) -> str:
    try:
        return file.getvalue().decode("utf-8-sig")
    except UnicodeDecodeError:
        return file.getvalue().decode("latin-1")


def matches_ui(db, admin):
    st.subheader("Add a Match")
    team_names = [t["name"] for t in store.list_teams(db)]
    with st.form("add_match"):
        c1, c2 = st.columns(2)
        if team_names:
            team1 = c1.selectbox("Team 1", team_names)
            team2 = c2.selectbox("Team 2", team_names, index=min(1, len(team_names) - 1))
        else:
            team1 = c1.text_input("Team 1")
            team2 = c2.text_input("Team 2")
        venue = st.text_input("Venue")
        c3, c4, c5 = st.columns(3)
        day = c3.date_input("Date")
        start = c4.time_input("Start time (UTC)", value=time(14, 0))
        status = c5.selectbox("Status", MATCH_STATUSES)
        submitted = st.form_submit_button("Add Match", type="primary")
    if submitted:
        try:
            match = MatchUpload(team1=team1, team2=team2, venue=venue,
                                date=datetime.combine(day, start), status=status)
        except ValueError as exc:
            st.error(str(exc))
        else:
            ok, match_id = run_admin_action(db, admin, store.create_match, match.model_dump())
            if ok:
                st.success(f"Match added with ID: {match_id}")

    st.subheader("Upload Matches")
    st.caption("CSV columns required: team1, team2, venue, date (ISO). Optional: status, isPredictionEnabledByAdmin")
    f = st.file_uploader("matches.csv", type=["csv"], key="matches_upload")
    if f and st.button("Import Matches", type="primary"):
        result = parse_matches_csv(read_upload(f))
        if not result.ok:
            show_errors(result.errors)
        else:
            ok, count = run_admin_action(db, admin, store.create_matches, [m.model_dump() for m in result.items])
            if ok:
                st.success(f"Imported {count} matches.")

    # Preview
    data = store.list_matches(db)
    if data:
        st.markdown("**Current Matches:**")
        st.dataframe(pd.DataFrame([{
            "id": m["id"], "match": f'{m.get("team1")} vs {m.get("team2")}', "venue": m.get("venue"),
            "start": format_match_time(m.get("date")), "status": m.get("status"),
            "override": m.get("isPredictionEnabledByAdmin", False),
        } for m in data]), use_container_width=True, hide_index=True)


def teams_ui(db, admin):
    st.subheader("Upload Teams")
    st.caption('JSON: {"team": "Mumbai Indians", "shortName": "MI", "squad": [{"name": "...", "role": "Batsman", "age": "30"}]} or a list of those')
    text = st.text_area("Team JSON", height=200)
    if st.button("Upload Teams", type="primary"):
        if not text.strip():
            st.error("Please enter JSON data.")
        else:
            result = parse_team_upload(text)
            if not result.ok:
                show_errors(result.errors)
            else:
                ok, count = run_admin_action(db, admin, store.upsert_teams, [t.to_document() for t in result.items])
                if ok:
                    st.success(f"Uploaded {count} team(s).")

    teams = store.list_teams(db)
    if not teams:
        st.info("No teams yet.")
        return
    st.markdown("**Current Teams:**")
    st.dataframe(pd.DataFrame([{
        "id": t["id"], "name": t.get("name"), "shortName": t.get("shortName", ""), "players": len(t.get("squad") or []),
    } for t in teams]), use_container_width=True, hide_index=True)
    with st.form("delete_team"):
        team_id = st.selectbox("Delete team", [t["id"] for t in teams])
        if st.form_submit_button("Delete"):
            ok, _ = run_admin_action(db, admin, store.delete_team, team_id)
            if ok:
                st.success(f"Deleted {team_id}.")
                st.rerun()


def prediction_controls_ui(db, admin):
    st.subheader("Prediction Management")
    st.caption("By default, predictions are only allowed within 24 hours of a match. "
               "Override opens them earlier; it has no effect once the match has started.")
    matches = store.list_matches(db, status="upcoming")
    if not matches:
        st.info("No upcoming matches found. Matches will appear here when scheduled.")
        return

    now = now_utc()
    for m in matches:
        c1, c2, c3 = st.columns([4, 2, 1])
        c1.write(match_label(m))
        c2.write(window_label(m, now))
        current = m.get("isPredictionEnabledByAdmin") is True
        wanted = c3.toggle("Override", value=current, key=f"override_{m['id']}")
        if wanted != current:
            ok, _ = run_admin_action(db, admin, store.set_prediction_override, m["id"], wanted)
            if ok:
                st.toast(f"Predictions {'enabled' if wanted else 'disabled'} for this match.")
                st.rerun()


def results_ui(db, admin):
    st.subheader("Enter Match Result")
    matches = store.list_matches(db)
    if not matches:
        st.info("Add matches first.")
        return
    questions = store.list_questions(db, active_only=False)
    choices = {f'{match_label(m)} [{m.get("status", "upcoming")}]': m for m in matches}
    match = choices[st.selectbox("Match", list(choices))]
    previous = (store.get_match_result(db, match["id"]) or {}).get("predictionResults", {})

    with st.form(f"result_{match['id']}"):
        winner = st.selectbox("Winner", [match.get("team1"), match.get("team2"), "no result"])
        correct = {}
        for q in questions:
            correct[q["id"]] = st.text_input(f'{q["text"]} [{q.get("type")}]', value=previous.get(q["id"], ""),
                                             key=f"res_{match['id']}_{q['id']}")
        submitted = st.form_submit_button("Save Result & Score", type="primary")
    if submitted:
        correct = {qid: value.strip() for qid, value in correct.items() if value.strip()}
        ok, _ = run_admin_action(db, admin, store.save_match_result, match["id"], winner, correct, admin["id"])
        if not ok:
            return
        ok, scored = run_admin_action(db, admin, score_match, match["id"], correct)
        if not ok:
            return
        ok, entries = run_admin_action(db, admin, rebuild_leaderboard)
        if ok:
            st.success(f"Scored {scored} answers. Leaderboard rebuilt with {entries} entries.")


def questions_ui(db, admin):
    st.subheader("Prediction Questions")
    questions = store.list_questions(db, active_only=False)
    for q in questions:
        c1, c2, c3, c4 = st.columns([5, 1, 1, 1])
        c1.write(f'**{q["text"]}** · {q.get("type")}')
        points = c2.number_input("Points", min_value=1, value=int(q.get("points") or 10), key=f"pts_{q['id']}")
        active = c3.checkbox("Active", value=q.get("isActive", True), key=f"act_{q['id']}")
        if points != int(q.get("points") or 10) or active != q.get("isActive", True):
            ok, _ = run_admin_action(db, admin, store.update_question, q["id"], {"points": int(points), "isActive": active})
            if ok:
                st.rerun()
        if c4.button("Delete", key=f"del_{q['id']}"):
            ok, _ = run_admin_action(db, admin, store.delete_question, q["id"])
            if ok:
                st.rerun()

    st.markdown("**Add Question**")
    with st.form("add_question", clear_on_submit=True):
        text = st.text_input("Question")
        qtype = st.selectbox("Type", QUESTION_TYPES)
        points = st.number_input("Points", min_value=1, value=10)
        negative = st.number_input("Points lost for a wrong answer", min_value=0, value=0)
        options = st.text_input("Options (comma separated, optional)")
        submitted = st.form_submit_button("Add Question", type="primary")
    if submitted:
        try:
            form = QuestionForm(text=text, type=qtype, points=points, negativePoints=negative, options=options)
        except ValueError as exc:
            st.error(str(exc))
        else:
            ok, _ = run_admin_action(db, admin, store.create_question, form.model_dump())
            if ok:
                st.success("Question added.")
                st.rerun()


def users_ui(db, admin):
    st.subheader("Users")
    users = store.list_users(db)
    if not users:
        st.info("No users yet.")
        return
    st.dataframe(pd.DataFrame([{
        "uid": u["id"], "name": u.get("displayName"), "email": u.get("email"), "role": u.get("role", "user"),
    } for u in users]), use_container_width=True, hide_index=True)

    with st.form("set_role"):
        labels = {f'{u.get("displayName")} <{u.get("email")}>': u["id"] for u in users}
        who = st.selectbox("User", list(labels))
        role = st.selectbox("Role", ROLES)
        if st.form_submit_button("Update role"):
            try:
                auth.set_user_role(db, admin["id"], labels[who], role)
            except (auth.AdminRequiredError, ValueError) as exc:
                st.error(str(exc))
            else:
                st.success("Role updated.")


def leaderboard_ui(db, admin):
    st.subheader("Global Leaderboard")
    if st.button("Rebuild from predictions"):
        ok, entries = run_admin_action(db, admin, rebuild_leaderboard)
        if ok:
            st.success(f"Leaderboard rebuilt with {entries} entries.")

    st.markdown("**Reset**")
    st.warning("This permanently deletes all global leaderboard entries. "
               "User prediction data remains intact, so the leaderboard can be rebuilt later.")
    confirm = st.text_input(f"Type {RESET_PHRASE} to confirm")
    if st.button("Reset Global Leaderboard", type="primary", disabled=confirm != RESET_PHRASE):
        ok, deleted = run_admin_action(db, admin, reset_leaderboard)
        if ok:
            if deleted:
                st.success(f"Successfully reset the global leaderboard. Deleted {deleted} entries.")
            else:
                st.info("The global leaderboard is already empty.")


def logging_ui():
    st.subheader("Logging")
    root = logging.getLogger()
    levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
    current = logging.getLevelName(root.level)
    level = st.selectbox("Log level", levels, index=levels.index(current) if current in levels else 1)
    if level != current:
        root.setLevel(level)
        logger.warning("Log level changed to %s", level)
        st.success(f"Log level set to {level}.")


def main():
    st.title("🛠️ Admin")
    db = get_db()
    admin = require_admin_page(db)

    tabs = st.tabs(["Matches", "Teams", "Prediction Controls", "Results", "Questions", "Users", "Leaderboard", "Logging"])
    with tabs[0]:
        matches_ui(db, admin)
    with tabs[1]:
        teams_ui(db, admin)
    with tabs[2]:
        prediction_controls_ui(db, admin)
    with tabs[3]:
        results_ui(db, admin)
    with tabs[4]:
        questions_ui(db, admin)
    with tabs[5]:
        users_ui(db, admin)
    with tabs[6]:
        leaderboard_ui(db, admin)
    with tabs[7]:
        logging_ui()


if __name__ == "__main__":
    main()
