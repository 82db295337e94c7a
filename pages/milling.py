"""
Module for the 'Milling' (daily stock log) page.
"""
from __future__ import annotations

from datetime import date

import pandas as pd
import streamlit as st

from errors import ValidationError
from milling_manager import MillingManager
from production_ledger import rice_quantity_from_bags
from timezone_utils import format_iso_date, local_today
from ui import header
from pages.helpers import get_config, qtls, require_season_store, st_safe_rerun

BY_PRODUCT_LABELS = {
    "bran_sold": "Bran Sold (Qtls)",
    "husk_sold": "Husk Sold (Qtls)",
    "sortex_broken_sold": "Sortex Broken Sold (Qtls)",
    "non_sortex_broken_sold": "Non-Sortex Broken Sold (Qtls)",
    "murgidana_sold": "Murgidana Sold (Qtls)",
    "rejection_sold": "Rejection Sold (Qtls)",
}


def _log_form(form_key: str, defaults: dict) -> tuple[bool, dict]:
    config = get_config()
    # Outside st.form: form widgets do not rerun until submit
    rice_bags = st.number_input(
        "Rice Bags Filled (New)", min_value=0, step=1,
        value=int(defaults.get("rice_bags_new", 0)), key=f"{form_key}_rice_bags",
    )
    rice_qty = rice_quantity_from_bags(rice_bags, config)
    st.caption(
        f"Rice produced: {rice_qty:,.3f} Qtls · FRK required for blending: "
        f"{rice_qty * config.frk_blend_ratio:,.4f} Qtls"
    )

    with st.form(form_key):
        default_date = date.fromisoformat(defaults["date"]) if defaults.get("date") else local_today()
        log_date = st.date_input("Date", value=default_date, format="DD-MM-YYYY")

        c1, c2 = st.columns(2)
        opened_new = c1.number_input(
            "Paddy Bags Opened (New)", min_value=0, step=1, value=int(defaults.get("paddy_bags_opened_new", 0))
        )
        opened_used = c2.number_input(
            "Paddy Bags Opened (Used)", min_value=0, step=1, value=int(defaults.get("paddy_bags_opened_used", 0))
        )

        entry = {
            "date": log_date.isoformat() if log_date else "",
            "paddy_bags_opened_new": opened_new,
            "paddy_bags_opened_used": opened_used,
            "rice_bags_new": rice_bags,
        }
        cols = st.columns(3)
        for i, (name, label) in enumerate(BY_PRODUCT_LABELS.items()):
            entry[name] = cols[i % 3].number_input(
                label, min_value=0.0, step=0.01, format="%.3f", value=float(defaults.get(name, 0.0))
            )

        submitted = st.form_submit_button("💾 Save Log", type="primary")
    return submitted, entry


def _ledger_table(manager: MillingManager) -> None:
    view = manager.ledger_view()
    st.markdown("#### 📒 Daily Production Ledger")
    if not view.rows:
        st.info("No daily logs yet.")
        return

    rows = [
        {
            "Date": format_iso_date(log.date),
            "Bags Opened (New)": log.paddy_bags_opened_new,
            "Bags Opened (Used)": log.paddy_bags_opened_used,
            "Paddy Consumed (Qtls)": round(log.paddy_consumed_qtls, 3),
            "Rice Bags": log.rice_bags_new,
            "Rice (Qtls)": round(log.rice_quantity, 3),
            "Bran": log.bran_sold,
            "Husk": log.husk_sold,
            "Sortex Broken": log.sortex_broken_sold,
            "Non-Sortex Broken": log.non_sortex_broken_sold,
            "Murgidana": log.murgidana_sold,
            "Rejection": log.rejection_sold,
            "WIP (Qtls)": round(log.work_in_progress_qtls, 3),
        }
        for log in view.rows
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    totals = view.totals
    t1, t2, t3, t4 = st.columns(4)
    t1.metric("Paddy Consumed", qtls(totals["paddy_consumed_qtls"]))
    t2.metric("Rice Produced", qtls(totals["rice_quantity"]))
    t3.metric("Current WIP", qtls(view.current_wip))
    t4.metric("Avg. Paddy Bag Weight", qtls(view.average_bag_weight))

    with st.expander("✏️ Edit or delete a log", expanded=False):
        labels = {log.id: format_iso_date(log.date) for log in view.rows}
        log_id = st.selectbox("Log", list(labels), format_func=labels.get, key="log_edit_select")
        log = next(l for l in view.rows if l.id == log_id)
        submitted, entry = _log_form(f"log_edit_form_{log_id}", MillingManager.entry_from_log(log))
        if submitted:
            try:
                manager.update_log(log_id, entry)
                st.success("Log updated.")
                st_safe_rerun()
            except ValidationError as e:
                st.error(str(e))
        if st.button("🗑️ Delete Log", key=f"log_delete_btn_{log_id}"):
            manager.delete_log(log_id)
            st_safe_rerun()


def render() -> None:
    header("Milling")
    manager = MillingManager(require_season_store(), get_config())

    summary = manager.stock_summary()
    bags = summary["bags"]
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Paddy Bags in Stock", f"{bags['stock_new']} new / {bags['stock_used']} used")
    m2.metric("Paddy Stock", qtls(summary["paddy_stock"]["stock"]))
    m3.metric("Paddy on Hand (incl. WIP)", qtls(summary["paddy_on_hand"]))
    m4.metric("Empty Bags Available", f"{bags['empty_bags_available']:,}")

    st.markdown("#### ➕ Add Daily Log")
    submitted, entry = _log_form("log_add_form", {})
    if submitted:
        try:
            manager.add_log(entry)
            st.success("Daily log saved.")
            st_safe_rerun()
        except ValidationError as e:
            st.error(str(e))

    st.divider()
    _ledger_table(manager)
