"""
Helper functions shared across Streamlit page modules.

They give every page the same store, ledger configuration and extractor,
and build the per-season managers for the signed-in profile. Importing
these from a standalone module avoids circular imports between pages and
the app entry point.
"""

from __future__ import annotations

from typing import Optional

import streamlit as st

from document_extraction import GeminiDocumentExtractor
from ledger_config import LedgerConfig, load_ledger_config
from storage import KeyValueStore, SeasonStore


def st_safe_rerun() -> None:
    """Trigger a rerun of the Streamlit app."""
    st.rerun()


@st.cache_resource
def get_store() -> KeyValueStore:
    return KeyValueStore()


@st.cache_resource
def get_config() -> LedgerConfig:
    return load_ledger_config()


@st.cache_resource
def get_extractor() -> GeminiDocumentExtractor:
    return GeminiDocumentExtractor.from_env()


def current_username() -> Optional[str]:
    user = st.session_state.get("auth_user") or {}
    return user.get("username")


def require_season_store() -> SeasonStore:
    """Season store of the signed-in profile; stops the page if nobody is signed in."""
    username = current_username()
    season = st.session_state.get("active_season")
    if not username or not season:
        st.error("Please sign in and select a season.")
        st.stop()
    return SeasonStore(get_store(), username, season)


def request_season_switch(season: str) -> None:
    """Switch the active season on the next run (the sidebar selector reads this)."""
    st.session_state["pending_season"] = season
    st_safe_rerun()


def qtls(value: float) -> str:
    return f"{value:,.3f} Qtls"
