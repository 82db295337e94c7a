"""
Module for the 'Settings' page (backup, restore and password).
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from auth import AuthManager
from backup_manager import BackupManager, RESTORE_MERGE, RESTORE_REPLACE
from errors import BackupFormatError, ProfileError
from logger import log_error
from timezone_utils import format_iso_date
from ui import header
from pages.helpers import current_username, get_store, st_safe_rerun


def _backup(store) -> None:
    st.markdown("#### 🗄️ Backup")
    st.caption("A backup holds every profile and every season on this machine.")
    try:
        content = BackupManager.export_json(store)
    except BackupFormatError as e:
        st.info(str(e))
        return

    c1, c2 = st.columns(2)
    c1.download_button(
        "⬇️ Download Backup",
        data=content.encode("utf-8"),
        file_name=BackupManager.backup_filename(),
        mime="application/json",
        type="primary",
    )
    if c2.button("💾 Save Backup to Server Folder", key="backup_write_btn"):
        try:
            info = BackupManager.write_backup_file(store)
            st.success(f"Backup saved: {info['filename']} ({info['size_kb']} KB)")
        except OSError as e:
            log_error(f"Backup write failed: {e}", exc_info=True)
            st.error(f"Backup failed: {e}")

    backups = BackupManager.list_backups(limit=10)
    if backups:
        st.dataframe(
            pd.DataFrame([
                {"File": b["filename"], "Saved": format_iso_date(b["datetime"], "%d-%m-%Y %H:%M"), "Size (KB)": b["size_kb"]}
                for b in backups
            ]),
            use_container_width=True,
            hide_index=True,
        )


def _restore(store) -> None:
    st.markdown("#### ♻️ Restore")
    uploaded = st.file_uploader("Backup file (.json)", type=["json"], key="restore_upload")
    if uploaded is None:
        return
    try:
        data = BackupManager.load_backup(uploaded.getvalue())
        preview = BackupManager.preview_backup(data)
    except BackupFormatError as e:
        st.error(str(e))
        return

    st.markdown("**This backup contains:**")
    for profile in preview["profiles"]:
        seasons = preview["seasons_by_profile"].get(profile, [])
        st.write(f"- {profile}: {', '.join(sorted(seasons, reverse=True)) or 'no season data'}")

    strategy = st.radio(
        "Restore mode",
        [RESTORE_MERGE, RESTORE_REPLACE],
        format_func=lambda s: {
            RESTORE_MERGE: "Merge - overwrite matching data, keep everything else",
            RESTORE_REPLACE: "Replace - delete all current data first",
        }[s],
        key="restore_strategy",
    )
    confirm = st.checkbox("I understand this will overwrite data on this machine", key="restore_confirm")
    if st.button("♻️ Restore Backup", key="restore_btn", type="primary", disabled=not confirm):
        try:
            result = BackupManager.restore_backup(store, data, strategy)
        except BackupFormatError as e:
            st.error(str(e))
            return
        st.success(f"Restored {result['keys_written']} item(s). Please sign in again.")
        st.session_state.auth_user = None
        st.session_state.active_season = None
        st_safe_rerun()


def _change_password(store) -> None:
    st.markdown("#### 🔑 Change Password")
    with st.form("change_password_form", clear_on_submit=True):
        current_pwd = st.text_input("Current Password", type="password")
        new_pwd = st.text_input("New Password", type="password")
        confirm_pwd = st.text_input("Confirm New Password", type="password")
        submit = st.form_submit_button("Change Password", type="primary")
    if submit:
        if not current_pwd or not new_pwd or not confirm_pwd:
            st.error("All fields are required.")
        elif new_pwd != confirm_pwd:
            st.error("New passwords do not match.")
        else:
            try:
                AuthManager.change_password(store, current_username(), current_pwd, new_pwd)
                st.success("Password changed successfully.")
            except ProfileError as e:
                st.error(str(e))


def _delete_profile(store) -> None:
    with st.expander("🗑️ Permanently Delete Profile (Irreversible)", expanded=False):
        username = current_username()
        st.warning(f"This deletes the profile '{username}' and all of its seasons.")
        typed = st.text_input("Type the username to confirm", key="delete_profile_confirm")
        if st.button("Delete Profile", key="delete_profile_btn", disabled=typed != username):
            AuthManager.delete_profile(store, username)
            st.session_state.auth_user = None
            st.session_state.active_season = None
            st_safe_rerun()


def render() -> None:
    header("Settings")
    store = get_store()
    tab_backup, tab_profile = st.tabs(["Backup & Restore", "Profile"])
    with tab_backup:
        _backup(store)
        st.divider()
        _restore(store)
    with tab_profile:
        _change_password(store)
        _delete_profile(store)
