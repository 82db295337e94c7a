"""
Module for the 'Rice Delivery' page (CMR deposit orders and challans).
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from errors import ExtractionError, ValidationError
from ledger_config import AGENCIES
from rice_delivery_manager import RiceDeliveryManager
from timezone_utils import format_iso_date, local_today
from ui import header
from pages.helpers import get_config, get_extractor, qtls, require_season_store, st_safe_rerun


def _cmr_orders(manager: RiceDeliveryManager) -> None:
    st.markdown("#### 📄 Upload CMR Deposit Order")
    uploaded = st.file_uploader("CMR Deposit Order (PDF)", type=["pdf"], key="cmr_upload")
    if uploaded is not None and st.button("Read CMR Order", key="cmr_upload_btn", type="primary"):
        with st.spinner("Reading document..."):
            try:
                cmr = manager.upload_cmr_order(uploaded.getvalue(), uploaded.type, get_extractor())
                st.success(f"CMR deposit order {cmr.order_no} saved for DO {cmr.do_no}.")
            except (ValidationError, ExtractionError) as e:
                st.error(str(e))

    with st.expander("➕ Enter a CMR deposit order manually", expanded=False):
        with st.form("cmr_add_form", clear_on_submit=True):
            c1, c2 = st.columns(2)
            do_no = c1.text_input("DO No.")
            order_no = c2.text_input("CMR Order No.")
            deposit_date = c1.text_input("Deposit Date")
            deposited_at = c2.text_input("Deposited At")
            submitted = st.form_submit_button("💾 Save", type="primary")
        if submitted:
            try:
                manager.add_cmr_order({
                    "doNo": do_no, "orderNo": order_no,
                    "depositDate": deposit_date, "depositedAt": deposited_at,
                })
                st_safe_rerun()
            except ValidationError as e:
                st.error(str(e))

    orders = manager.list_cmr_orders()
    if not orders:
        st.info("No CMR deposit orders for this season yet.")
        return
    st.dataframe(
        pd.DataFrame([
            {"Order No.": o.order_no, "DO No.": o.do_no, "Deposit Date": o.deposit_date, "Deposited At": o.deposited_at}
            for o in orders
        ]),
        use_container_width=True,
        hide_index=True,
    )

    with st.expander("✏️ Edit or delete a CMR deposit order", expanded=False):
        labels = {o.id: f"{o.order_no} (DO {o.do_no})" for o in orders}
        cmr_id = st.selectbox("CMR Order", list(labels), format_func=labels.get, key="cmr_edit_select")
        cmr = next(o for o in orders if o.id == cmr_id)
        with st.form(f"cmr_edit_form_{cmr_id}"):
            c1, c2 = st.columns(2)
            do_no = c1.text_input("DO No.", value=cmr.do_no)
            order_no = c2.text_input("CMR Order No.", value=cmr.order_no)
            deposit_date = c1.text_input("Deposit Date", value=cmr.deposit_date)
            deposited_at = c2.text_input("Deposited At", value=cmr.deposited_at)
            save = st.form_submit_button("💾 Save Changes", type="primary")
        if save:
            try:
                manager.update_cmr_order(cmr_id, {
                    "do_no": do_no, "order_no": order_no,
                    "deposit_date": deposit_date, "deposited_at": deposited_at,
                })
                st_safe_rerun()
            except ValidationError as e:
                st.error(str(e))
        st.caption("Deliveries already made against this order are kept.")
        if st.button("🗑️ Delete CMR Order", key=f"cmr_delete_btn_{cmr_id}"):
            manager.delete_cmr_order(cmr_id)
            st_safe_rerun()


def _delivery_form(manager: RiceDeliveryManager) -> None:
    st.markdown("#### 🚛 New Delivery (Challan)")
    cmr_orders = manager.list_cmr_orders()
    if not cmr_orders:
        st.info("Upload a CMR deposit order before recording deliveries.")
        return

    config = get_config()
    labels = {o.order_no: f"{o.order_no} (DO {o.do_no})" for o in cmr_orders}
    with st.form("delivery_add_form"):
        c1, c2 = st.columns(2)
        agency = c1.selectbox("Agency", AGENCIES)
        delivery_date = c2.date_input("Date", value=local_today(), format="DD-MM-YYYY")
        cmr_order_no = c1.selectbox("CMR Deposit Order", list(labels), format_func=labels.get)
        vehicle_no = c2.text_input("Vehicle No.")
        batch_no = c1.text_input("Batch No.")
        bags = c2.number_input("Bags Delivered", min_value=0, step=1)
        st.caption(
            f"Each bag is {config.rice_bag_weight_qtl} Qtls; {config.frk_blend_ratio:.0%} of every "
            f"delivery is drawn from FRK stock."
        )
        submitted = st.form_submit_button("💾 Save Delivery", type="primary")
    if submitted:
        cmr = next(o for o in cmr_orders if o.order_no == cmr_order_no)
        try:
            manager.add_delivery({
                "agency": agency,
                "date": delivery_date.isoformat() if delivery_date else "",
                "do_no": cmr.do_no,
                "cmr_order_no": cmr.order_no,
                "vehicle_no": vehicle_no,
                "batch_no": batch_no,
                "bags_delivered": bags,
            })
            st.success("Delivery saved.")
            st_safe_rerun()
        except ValidationError as e:
            st.error(str(e))


def _deliveries(manager: RiceDeliveryManager) -> None:
    deliveries = manager.list_deliveries()
    st.markdown("#### 📋 Deliveries")
    if not deliveries:
        st.info("No deliveries recorded for this season.")
        return
    st.dataframe(
        pd.DataFrame([
            {
                "Date": format_iso_date(d.date),
                "Agency": d.agency,
                "DO No.": d.do_no,
                "CMR Order No.": d.cmr_order_no,
                "Vehicle No.": d.vehicle_no,
                "Batch No.": d.batch_no,
                "Bags": d.bags_delivered,
                "Quantity (Qtls)": round(d.quantity_delivered_qtls, 3),
            }
            for d in deliveries
        ]),
        use_container_width=True,
        hide_index=True,
    )
    with st.expander("🗑️ Delete a delivery", expanded=False):
        labels = {d.id: f"{format_iso_date(d.date)} · {d.agency} · {d.vehicle_no} · {d.bags_delivered} bags" for d in deliveries}
        delivery_id = st.selectbox("Delivery", list(labels), format_func=labels.get, key="delivery_delete_select")
        if st.button("Delete Delivery", key="delivery_delete_btn"):
            manager.delete_delivery(delivery_id)
            st_safe_rerun()


def render() -> None:
    header("Rice Delivery")
    manager = RiceDeliveryManager(require_season_store(), get_config())

    summary = manager.delivery_summary()
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Plain Rice Stock", qtls(summary["plain_rice_stock"]))
    m2.metric("Rice Stock (Bags)", f"{summary['plain_rice_stock_bags']:,}")
    m3.metric("FRK Stock", qtls(summary["frk_stock"]))
    m4.metric("Total Delivered", qtls(summary["total_delivered"]))
    st.caption(" · ".join(
        f"{agency}: {summary['by_agency'][agency]:,.3f} Qtls ({summary['share_percent'][agency]:.1f}%)"
        for agency in summary["by_agency"]
    ))

    tab_cmr, tab_delivery = st.tabs(["CMR Deposit Orders", "Deliveries"])
    with tab_cmr:
        _cmr_orders(manager)
    with tab_delivery:
        _delivery_form(manager)
        st.divider()
        _deliveries(manager)
