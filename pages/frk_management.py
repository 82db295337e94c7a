"""
Module for the 'FRK Management' page.
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from errors import ValidationError
from frk_manager import FrkManager
from stock_summary import frk_stock
from records import RecordKind
from timezone_utils import format_iso_date, local_today
from ui import header
from pages.helpers import get_config, qtls, require_season_store, st_safe_rerun


def render() -> None:
    header("FRK Management")
    season_store = require_season_store()
    manager = FrkManager(season_store)

    deliveries = season_store.load(RecordKind.RICE_DELIVERY_RECORDS)
    m1, m2 = st.columns(2)
    m1.metric("Total FRK Purchased", qtls(manager.total_purchased()))
    m2.metric("FRK in Stock", qtls(frk_stock(manager.list_records(), deliveries, get_config())))

    st.markdown("#### ➕ Add FRK Purchase")
    with st.form("frk_add_form", clear_on_submit=True):
        c1, c2 = st.columns(2)
        frk_date = c1.date_input("Date", value=local_today(), format="DD-MM-YYYY")
        invoice_no = c2.text_input("Invoice No.")
        supplier = c1.text_input("Supplier")
        quantity = c2.number_input("Quantity (Qtls)", min_value=0.0, step=0.01, format="%.3f")
        submitted = st.form_submit_button("💾 Save Purchase", type="primary")
    if submitted:
        try:
            manager.add_record({
                "date": frk_date.isoformat() if frk_date else "",
                "invoice_no": invoice_no,
                "supplier": supplier,
                "quantity_qtls": quantity,
            })
            st.success("FRK purchase saved.")
            st_safe_rerun()
        except ValidationError as e:
            st.error(str(e))

    st.divider()
    records = manager.list_records()
    st.markdown("#### 📋 FRK Purchases")
    if not records:
        st.info("No FRK purchases recorded for this season.")
        return

    df = pd.DataFrame([
        {
            "Date": format_iso_date(r.date),
            "Invoice No.": r.invoice_no,
            "Supplier": r.supplier,
            "Quantity (Qtls)": round(r.quantity_qtls, 3),
        }
        for r in records
    ])
    st.dataframe(df, use_container_width=True, hide_index=True)

    with st.expander("🗑️ Delete a purchase", expanded=False):
        labels = {r.id: f"{format_iso_date(r.date)} · {r.invoice_no} · {r.supplier}" for r in records}
        record_id = st.selectbox("Purchase", list(labels), format_func=labels.get, key="frk_delete_select")
        st.caption("Deleting a purchase may affect your FRK stock.")
        if st.button("Delete Purchase", key="frk_delete_btn"):
            manager.delete_record(record_id)
            st_safe_rerun()
