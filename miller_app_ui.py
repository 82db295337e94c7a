# miller_app_ui.py
import streamlit as st

from db import init_db
from logger import log_info
from storage import available_seasons
from pages.helpers import get_config, get_store, st_safe_rerun

init_db()
st.set_page_config(page_title="Miller Mitra", page_icon="🌾", layout="wide")
st.session_state.setdefault("auth_user", None)
st.session_state.setdefault("active_season", None)

# Signed out: only the profile page is reachable
if st.session_state.auth_user is None:
    from pages.home import render as render_home
    render_home()
    st.stop()

PAGE_OPTIONS = [
    "Dashboard",
    "Paddy Lifting",
    "Milling",
    "FRK Management",
    "Rice Delivery",
    "Register",
    "Reports",
    "Settings",
]

user = st.session_state.auth_user
seasons = available_seasons(get_store(), user["username"], get_config().seasons)

# A season switch requested by a page (e.g. a release order for another season)
pending_season = st.session_state.pop("pending_season", None)
if pending_season:
    if pending_season not in seasons:
        seasons = sorted(set(seasons) | {pending_season}, reverse=True)
    st.session_state["_season_select"] = pending_season
elif st.session_state.get("_season_select") not in seasons:
    active = st.session_state.get("active_season")
    st.session_state["_season_select"] = active if active in seasons else seasons[0]

st.sidebar.markdown(f"### 🌾 Miller Mitra\nSigned in as **{user['username']}**")
season = st.sidebar.selectbox("Season (Uparjan Varsh)", seasons, key="_season_select")
if season != st.session_state.get("active_season"):
    log_info(f"{user['username']} switched to season {season}")
st.session_state["active_season"] = season

_initial_page = st.session_state.get("page") or PAGE_OPTIONS[0]
if _initial_page not in PAGE_OPTIONS:
    _initial_page = PAGE_OPTIONS[0]
page = st.sidebar.selectbox("Page", PAGE_OPTIONS, index=PAGE_OPTIONS.index(_initial_page), key="_nav_page_select")
st.session_state["page"] = page

if st.sidebar.button("🚪 Sign out", key="sidebar_logout_btn"):
    log_info(f"Signed out: {user['username']}")
    st.session_state.auth_user = None
    st.session_state.active_season = None
    st.session_state.pop("_season_select", None)
    st_safe_rerun()

if page == "Dashboard":
    from pages.dashboard import render as render_dashboard
    render_dashboard()
    st.stop()
elif page == "Paddy Lifting":
    from pages.paddy_lifting import render as render_paddy_lifting
    render_paddy_lifting()
    st.stop()
elif page == "Milling":
    from pages.milling import render as render_milling
    render_milling()
    st.stop()
elif page == "FRK Management":
    from pages.frk_management import render as render_frk_management
    render_frk_management()
    st.stop()
elif page == "Rice Delivery":
    from pages.rice_delivery import render as render_rice_delivery
    render_rice_delivery()
    st.stop()
elif page == "Register":
    from pages.register import render as render_register
    render_register()
    st.stop()
elif page == "Reports":
    from pages.reports import render as render_reports
    render_reports()
    st.stop()
elif page == "Settings":
    from pages.settings import render as render_settings
    render_settings()
    st.stop()
