"""
Module for the profile (sign-in) page.
"""
from __future__ import annotations

import streamlit as st

from auth import AuthManager
from errors import ProfileError
from logger import log_error
from ui import header
from pages.helpers import get_store, st_safe_rerun


def _sign_in(store) -> None:
    usernames = AuthManager.list_usernames(store)
    with st.container(border=True):
        st.markdown("#### Sign in")
        if not usernames:
            st.info("No profiles yet. Create one in the **New Profile** tab.")
            return
        username = st.selectbox("Profile", usernames, key="home_username")
        password = st.text_input("Password", type="password", key="home_password")

        if st.button("🔐 Sign in", key="home_login_btn", type="primary"):
            if not password:
                st.error("Please enter a password.")
                return
            user = AuthManager.authenticate(store, username, password)
            if user:
                st.session_state.auth_user = user
                st.session_state.active_season = None
                st_safe_rerun()
            else:
                st.error("Invalid username or password.")


def _create_profile(store) -> None:
    phrase = st.session_state.get("new_profile_phrase")
    if phrase:
        st.success(f"Profile **{st.session_state.get('new_profile_name')}** created.")
        st.warning(
            "Write down this recovery phrase and keep it safe. It is shown only once and is the "
            "only way to reset a forgotten password."
        )
        st.code(phrase, language=None)
        if st.button("I have saved it", key="home_phrase_ack"):
            st.session_state.pop("new_profile_phrase", None)
            st.session_state.pop("new_profile_name", None)
            st_safe_rerun()
        return

    with st.form("create_profile_form"):
        username = st.text_input("Username (letters and numbers only)")
        password = st.text_input("Password", type="password")
        confirm = st.text_input("Confirm Password", type="password")
        submitted = st.form_submit_button("Create Profile", type="primary")

    if submitted:
        if password != confirm:
            st.error("Passwords do not match.")
            return
        try:
            st.session_state["new_profile_phrase"] = AuthManager.create_profile(store, username, password)
            st.session_state["new_profile_name"] = username.strip()
            st_safe_rerun()
        except ProfileError as e:
            st.error(str(e))


def _recover(store) -> None:
    with st.form("recover_profile_form"):
        username = st.text_input("Username")
        phrase = st.text_area("Recovery phrase (12 words)", height=80)
        new_password = st.text_input("New Password", type="password")
        confirm = st.text_input("Confirm New Password", type="password")
        submitted = st.form_submit_button("Reset Password", type="primary")

    if submitted:
        if new_password != confirm:
            st.error("New passwords do not match.")
            return
        try:
            AuthManager.reset_password_with_phrase(store, username, phrase, new_password)
            st.success("Password reset. You can now sign in.")
        except ProfileError as e:
            st.error(str(e))
        except Exception as ex:
            log_error(f"Password reset failed: {ex}", exc_info=True)
            st.error(f"Password reset failed: {ex}")


def render() -> None:
    header("Welcome")
    store = get_store()

    c1, c2, c3 = st.columns([0.2, 0.6, 0.2])
    with c2:
        st.markdown("### 🌾 Miller Mitra")
        st.caption("Paddy lifting, milling and CMR delivery ledger for custom-milling rice mills")

        tab_login, tab_new, tab_recover = st.tabs(["Sign in", "New Profile", "Forgot Password"])
        with tab_login:
            _sign_in(store)
        with tab_new:
            _create_profile(store)
        with tab_recover:
            _recover(store)
