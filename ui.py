# ui.py
"""Header bar shown at the top of every page."""

import streamlit as st

PAGE_ICONS = {
    "Welcome": "🌾",
    "Dashboard": "📊",
    "Paddy Lifting": "🚚",
    "Milling": "⚙️",
    "FRK Management": "🧪",
    "Rice Delivery": "🚛",
    "DO Register": "📒",
    "Reports": "📑",
    "Settings": "🛠️",
}


def _identity() -> str:
    user = st.session_state.get("auth_user")
    if not user:
        return "Not signed in"
    season = st.session_state.get("active_season")
    if season:
        return f"👤 {user['username']} · Season {season}"
    return f"👤 {user['username']}"


def header(title: str, subtitle: str = "Miller Mitra · Rice Mill Ledger"):
    left, right = st.columns([0.72, 0.28])
    with left:
        st.markdown(f"## {PAGE_ICONS.get(title, '🌾')} {title}")
        st.caption(subtitle)
    with right:
        st.markdown(
            "<div style='text-align:right;margin-top:0.9rem;font-size:0.9rem;color:#92400e'>"
            f"{_identity()}</div>",
            unsafe_allow_html=True,
        )
    st.divider()
