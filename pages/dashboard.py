"""
Module for the 'Dashboard' page.
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from charts import godown_lifting_bar, turnout_pie
from stock_summary import DashboardMetrics
from ui import header
from pages.helpers import get_config, qtls, require_season_store


def render() -> None:
    header("Dashboard")
    summary = DashboardMetrics.get_season_summary(require_season_store(), get_config())

    if not summary["release_orders"]:
        st.info("No release orders for this season yet. Start on the Paddy Lifting page.")

    # ---- Paddy ----
    st.markdown("#### 🌾 Paddy")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Allotted", qtls(summary["total_allotted"]))
    c2.metric("Lifted", qtls(summary["total_lifted"]))
    c3.metric("Pending", qtls(summary["total_pending"]))
    c4.metric("On Hand (incl. WIP)", qtls(summary["paddy_on_hand"]))

    # ---- Rice ----
    st.markdown("#### 🍚 Rice")
    deliveries = summary["deliveries"]
    r1, r2, r3, r4 = st.columns(4)
    r1.metric("Produced", qtls(summary["rice_produced"]))
    r2.metric("Delivered", qtls(deliveries["total_delivered"]))
    r3.metric("Plain Rice Stock", qtls(summary["plain_rice_stock"]), f"{summary['plain_rice_stock_bags']:,} bags", delta_color="off")
    r4.metric("FRK Stock", qtls(summary["frk_stock"]))

    col_left, col_right = st.columns(2)
    with col_left:
        if summary["godowns"]:
            st.markdown("##### Godown-wise Lifting")
            st.plotly_chart(godown_lifting_bar(summary["godowns"]), use_container_width=True)
    with col_right:
        if summary["turnout"]:
            st.plotly_chart(turnout_pie(summary["turnout"]), use_container_width=True)

    if summary["do_wise"]:
        st.markdown("#### 📋 DO-wise Position")
        st.dataframe(
            pd.DataFrame([
                {
                    "DO No.": row["do_no"],
                    "Godown": row["godown"],
                    "Paddy Allotted": round(row["paddy_allotted"], 3),
                    "Paddy Lifted": round(row["paddy_lifted"], 3),
                    "Paddy Pending": round(row["paddy_pending"], 3),
                    "Rice Due": round(row["rice_entitlement"], 3),
                    "Rice Delivered": round(row["rice_delivered"], 3),
                    "Rice Pending": round(row["rice_pending"], 3),
                }
                for row in summary["do_wise"]
            ]),
            use_container_width=True,
            hide_index=True,
        )

    bags = summary["bags"]
    st.markdown("#### 🧺 Bags and By-products")
    b1, b2, b3 = st.columns(3)
    b1.metric("Paddy Bags in Stock", f"{bags['stock_total']:,}")
    b2.metric("Empty Bags Available", f"{bags['empty_bags_available']:,}")
    b3.metric("Avg. Paddy Bag Weight", qtls(summary["average_bag_weight"]))
    by_products = summary["by_products"]
    st.caption(" · ".join(
        f"{name.replace('_sold', '').replace('_', ' ').title()}: {value:,.3f} Qtls"
        for name, value in by_products.items()
    ))
