# app.py
import streamlit as st

from config import APP_TITLE
from utils import auth
from utils.ui import current_user, get_db, get_identity

st.set_page_config(page_title=APP_TITLE, page_icon="🏏", layout="wide")


def sign_in(db):
    with st.form("signin"):
        email = st.text_input("Email").lower().strip()
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in")
        if submitted:
            if not email or "@" not in email or not password:
                st.error("Please enter a valid email and password.")
                return
            try:
                st.session_state["user"] = auth.sign_in(db, get_identity(), email, password)
            except auth.AuthError as exc:
                st.error(str(exc))
                return
            st.success("Signed in!")
            st.rerun()


def register(db):
    with st.form("register"):
        name = st.text_input("Display name")
        email = st.text_input("Email", key="register_email").lower().strip()
        password = st.text_input("Password", type="password", key="register_password")
        confirm = st.text_input("Confirm password", type="password")
        submitted = st.form_submit_button("Create account")
        if submitted:
            if not name or not email or "@" not in email:
                st.error("Please enter a valid name and email.")
                return
            if password != confirm:
                st.error("Passwords do not match.")
                return
            try:
                st.session_state["user"] = auth.register(db, get_identity(), email, password, name)
            except auth.AuthError as exc:
                st.error(str(exc))
                return
            st.success("Account created!")
            st.rerun()


def main():
    db = get_db()

    st.title(APP_TITLE)
    st.caption("Answer match questions before the start · Climb the leaderboard · Win the week")

    user = current_user()
    if not user:
        tab_in, tab_up = st.tabs(["Sign in", "Register"])
        with tab_in:
            sign_in(db)
        with tab_up:
            register(db)
    else:
        role = " · admin" if user.get("role") == "admin" else ""
        st.success(f"Signed in as {user.get('displayName')} ({user.get('email')}){role}")
        if st.button("Sign out"):
            st.session_state.pop("user", None)
            st.rerun()
        st.markdown("Use the left sidebar to navigate between pages.")

    st.divider()
    st.subheader("Tips")
    st.write(
        "- Predictions for a match open 24 hours before it starts and lock at the start time.\n"
        "- Admins can open predictions earlier for a specific match.\n"
        "- You can withdraw your answers until 5 minutes before the start.\n"
        "- The leaderboard updates once an admin enters the match result."
    )


if __name__ == "__main__":
    main()
