"""
Module for the 'Reports' page.
"""
from __future__ import annotations

from datetime import timedelta

import streamlit as st

from charts import turnout_pie
from records import RecordKind
from report_pdf import (
    generate_lifting_report_pdf, generate_stock_summary_pdf, lifting_report_csv, lifting_report_dataframe,
)
from stock_summary import DashboardMetrics, filter_lifting_report, lifting_godowns
from timezone_utils import local_today
from ui import header
from pages.helpers import current_username, get_config, qtls, require_season_store


def _lifting_report(season_store) -> None:
    lifts = season_store.load(RecordKind.LIFTING_RECORDS)
    st.markdown("#### 🚚 Paddy Lifting Report")
    today = local_today()
    c1, c2, c3 = st.columns(3)
    start = c1.date_input("From", value=today - timedelta(days=30), format="DD-MM-YYYY", key="rpt_from")
    end = c2.date_input("To", value=today, format="DD-MM-YYYY", key="rpt_to")
    godown = c3.selectbox("Godown", ["All"] + lifting_godowns(lifts), key="rpt_godown")

    report = filter_lifting_report(lifts, start, end, godown)
    totals = report["totals"]
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Gross", qtls(totals["gross"]))
    m2.metric("Tare", qtls(totals["tare"]))
    m3.metric("Net", qtls(totals["net"]))
    m4.metric("Bags", f"{totals['new_bags']} new / {totals['used_bags']} used")

    df = lifting_report_dataframe(report["records"])
    if df.empty:
        st.info("No lifts in the selected range.")
        return
    st.dataframe(df, use_container_width=True, hide_index=True)

    filters_text = f"{start.strftime('%d-%m-%Y')} to {end.strftime('%d-%m-%Y')} · Godown: {godown}"
    season = season_store.season
    d1, d2 = st.columns(2)
    d1.download_button(
        "⬇️ Download CSV",
        data=lifting_report_csv(report["records"]),
        file_name=f"lifting-report-{season}-{start.isoformat()}-{end.isoformat()}.csv",
        mime="text/csv",
    )
    d2.download_button(
        "⬇️ Download PDF",
        data=generate_lifting_report_pdf(report, current_username(), season, filters_text),
        file_name=f"lifting-report-{season}-{start.isoformat()}-{end.isoformat()}.pdf",
        mime="application/pdf",
    )


def _stock_report(season_store) -> None:
    summary = DashboardMetrics.get_season_summary(season_store, get_config())
    st.markdown("#### 📦 Stock Summary")
    if summary["turnout"]:
        st.plotly_chart(turnout_pie(summary["turnout"]), use_container_width=True)
    else:
        st.info("Turnout appears once paddy has been consumed in milling.")
    st.download_button(
        "⬇️ Download Stock Summary PDF",
        data=generate_stock_summary_pdf(summary, current_username(), season_store.season),
        file_name=f"stock-summary-{season_store.season}.pdf",
        mime="application/pdf",
    )


def render() -> None:
    header("Reports")
    season_store = require_season_store()
    tab_lifting, tab_stock = st.tabs(["Lifting Report", "Stock Summary"])
    with tab_lifting:
        _lifting_report(season_store)
    with tab_stock:
        _stock_report(season_store)
