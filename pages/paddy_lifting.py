"""
Module for the 'Paddy Lifting' page.
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from errors import ExtractionError, SeasonMismatchError, ValidationError
from lift_allocator import LiftRequest
from paddy_lifting_manager import PaddyLiftingManager
from timezone_utils import format_iso_date
from ui import header
from pages.helpers import (
    get_config, get_extractor, qtls, request_season_switch, require_season_store, st_safe_rerun,
)

LIFT_FORM_KEYS = ("lift_rst_no", "lift_truck_no", "lift_gross", "lift_new_bags", "lift_used_bags")


def _upload_release_order(manager: PaddyLiftingManager) -> None:
    st.markdown("#### 📄 Upload Release Order")
    uploaded = st.file_uploader(
        "Dhan Delivery Order (PDF)", type=["pdf"], key="ro_upload"
    )
    mismatch = st.session_state.get("ro_season_mismatch")

    if uploaded is not None and st.button("Read Release Order", key="ro_upload_btn", type="primary"):
        st.session_state.pop("ro_season_mismatch", None)
        with st.spinner("Reading document..."):
            try:
                result = manager.import_release_order(uploaded.getvalue(), uploaded.type, get_extractor())
                verb = "added" if result["created"] else "updated"
                st.success(f"Release order {result['order'].do_no} {verb}.")
            except SeasonMismatchError as e:
                st.session_state["ro_season_mismatch"] = str(e)
                st.session_state["ro_season_target"] = e.target_season
                st_safe_rerun()
            except (ValidationError, ExtractionError) as e:
                st.error(str(e))

    if mismatch and uploaded is not None:
        target = st.session_state.get("ro_season_target")
        st.warning(f"{mismatch} Save it to season '{target}' and switch to that season?")
        c1, c2 = st.columns(2)
        if c1.button(f"Save to {target} and switch", key="ro_switch_btn", type="primary"):
            try:
                result = manager.import_release_order(
                    uploaded.getvalue(), uploaded.type, get_extractor(), allow_season_switch=True
                )
            except (ValidationError, ExtractionError) as e:
                st.error(str(e))
            else:
                st.session_state.pop("ro_season_mismatch", None)
                request_season_switch(result["season"])
        if c2.button("Cancel", key="ro_switch_cancel"):
            st.session_state.pop("ro_season_mismatch", None)
            st_safe_rerun()


def _release_orders(manager: PaddyLiftingManager) -> None:
    orders = manager.list_release_orders()
    st.markdown("#### 📋 Release Orders")
    if not orders:
        st.info("No release orders for this season yet. Upload a Dhan Delivery Order to begin.")
        return

    pending = {o.do_no: o.allotted_qtls for o in orders}
    for record in manager.list_lifting_records():
        if record.do_no in pending:
            pending[record.do_no] -= record.net_paddy_quantity

    df = pd.DataFrame([
        {
            "DO No.": o.do_no,
            "DO Date": o.do_date,
            "Lot No.": o.lot_no,
            "Issue Center": o.issue_center,
            "Godown": o.godown,
            "Quantity (Qtls)": o.allotted_qtls,
            "Pending (Qtls)": round(pending[o.do_no], 3),
            "Valid Upto": o.valid_upto,
        }
        for o in orders
    ])
    st.dataframe(df, use_container_width=True, hide_index=True)

    with st.expander("✏️ Edit or delete a release order", expanded=False):
        do_no = st.selectbox("DO No.", [o.do_no for o in orders], key="ro_edit_select")
        order = next(o for o in orders if o.do_no == do_no)
        with st.form(f"ro_edit_form_{do_no}"):
            c1, c2 = st.columns(2)
            do_date = c1.text_input("DO Date", value=order.do_date)
            lot_no = c2.text_input("Lot No.", value=order.lot_no)
            issue_center = c1.text_input("Issue Center", value=order.issue_center)
            godown = c2.text_input("Godown", value=order.godown)
            quantity = c1.text_input("Quantity (Qtls)", value=order.quantity)
            valid_upto = c2.text_input("Valid Upto", value=order.valid_upto)
            uparjan_varsh = c1.text_input("Uparjan Varsh", value=order.uparjan_varsh)
            save = st.form_submit_button("💾 Save Changes", type="primary")
        if save:
            try:
                manager.update_release_order(do_no, {
                    "do_date": do_date, "lot_no": lot_no, "issue_center": issue_center,
                    "godown": godown, "quantity": quantity, "valid_upto": valid_upto,
                    "uparjan_varsh": uparjan_varsh,
                })
                st.success(f"Release order {do_no} updated.")
                st_safe_rerun()
            except ValidationError as e:
                st.error(str(e))

        st.caption("Deleting a release order also deletes every lifting record made against it.")
        confirm = st.checkbox(f"Yes, delete {do_no} and its lifting records", key=f"ro_delete_confirm_{do_no}")
        if st.button("🗑️ Delete Release Order", key=f"ro_delete_btn_{do_no}", disabled=not confirm):
            removed = manager.delete_release_order(do_no)
            st.success(f"Release order {do_no} deleted ({removed} lifting record(s) removed).")
            st_safe_rerun()


def _scan_slip(manager: PaddyLiftingManager) -> None:
    slip = st.file_uploader(
        "Scan Kanta Parchi (optional)", type=["jpg", "jpeg", "png", "webp", "pdf"], key="slip_upload"
    )
    if slip is not None and st.button("Read Weighing Slip", key="slip_read_btn"):
        with st.spinner("Reading weighing slip..."):
            try:
                form = manager.scan_weighing_slip(slip.getvalue(), slip.type, get_extractor())
            except ExtractionError as e:
                st.error(str(e))
                return
        st.session_state["lift_rst_no"] = form["rst_no"]
        st.session_state["lift_truck_no"] = form["truck_no"]
        st.session_state["lift_gross"] = form["gross_quantity"]
        st.session_state["lift_new_bags"] = form["new_bags"]
        st_safe_rerun()


def _lift_form(manager: PaddyLiftingManager) -> None:
    st.markdown("#### 🚚 Record a Lift")
    godowns = [g["godown"] for g in manager.godown_summary() if g["pending"] > get_config().tolerance]
    if not godowns:
        st.info("No godown has paddy pending for lifting.")
        return

    godown = st.selectbox("Godown", godowns, key="lift_godown")
    _scan_slip(manager)

    c1, c2 = st.columns(2)
    c1.text_input("RST No.", key="lift_rst_no")
    c2.text_input("Truck No.", key="lift_truck_no")
    c1.text_input("Gross Lifted Quantity (Qtls)", key="lift_gross")
    b1, b2 = c2.columns(2)
    b1.text_input("New Bags", key="lift_new_bags")
    b2.text_input("Used Bags", key="lift_used_bags")

    request = LiftRequest(
        godown=godown,
        gross_quantity=st.session_state.get("lift_gross", ""),
        new_bags=st.session_state.get("lift_new_bags") or 0,
        used_bags=st.session_state.get("lift_used_bags") or 0,
        rst_no=st.session_state.get("lift_rst_no", ""),
        truck_no=st.session_state.get("lift_truck_no", ""),
    )
    preview = manager.preview_lift(request)

    m1, m2, m3 = st.columns(3)
    m1.metric("Bag Weight (Tare)", qtls(preview["tare"]))
    m2.metric("Net Paddy", qtls(preview["net"]))
    m3.metric("Pending in Godown", qtls(preview["godown_pending"]))

    second_do_no = None
    for i, slot in enumerate(preview["slots"]):
        if slot.is_locked:
            st.caption(f"DO {slot.do_no}: {slot.quantity:,.3f} Qtls (pending {slot.max_quantity:,.3f})")
        else:
            pending = {c.do_no: c.pending for c in preview["candidates"]}
            second_do_no = st.selectbox(
                f"DO for the additional {slot.quantity:,.3f} Qtls",
                slot.options,
                index=None,
                format_func=lambda d: f"{d} (pending {pending[d]:,.3f})",
                key=f"lift_second_do_{i}",
            )

    if st.button("✅ Save Lift", key="lift_save_btn", type="primary"):
        try:
            records = manager.record_lift(request, second_do_no=second_do_no)
        except ValidationError as e:
            st.error(str(e))
            return
        for key in LIFT_FORM_KEYS:
            st.session_state.pop(key, None)
        st.success(f"Lift saved as {len(records)} record(s).")
        st_safe_rerun()


def _lifting_records(manager: PaddyLiftingManager) -> None:
    records = sorted(manager.list_lifting_records(), key=lambda r: r.lifting_date, reverse=True)
    st.markdown("#### 📦 Lifting Records")
    if not records:
        st.info("No lifts recorded yet.")
        return

    df = pd.DataFrame([
        {
            "Date": format_iso_date(r.lifting_date),
            "DO No.": r.do_no,
            "Godown": r.godown,
            "RST No.": r.rst_no,
            "Truck No.": r.truck_no,
            "Gross (Qtls)": round(r.gross_lifted_quantity, 3),
            "Tare (Qtls)": round(r.total_bag_weight, 3),
            "Net (Qtls)": round(r.net_paddy_quantity, 3),
            "New Bags": r.number_of_new_bags,
            "Used Bags": r.number_of_used_bags,
        }
        for r in records
    ])
    st.dataframe(df, use_container_width=True, hide_index=True)

    with st.expander("✏️ Edit or delete a lifting record", expanded=False):
        labels = {
            r.id: f"{format_iso_date(r.lifting_date)} · RST {r.rst_no} · DO {r.do_no} · {r.net_paddy_quantity:,.3f} Qtls"
            for r in records
        }
        record_id = st.selectbox("Record", list(labels), format_func=labels.get, key="lift_edit_select")
        record = next(r for r in records if r.id == record_id)
        options = [o.do_no for o in manager.lifting_edit_options(record_id)]
        with st.form(f"lift_edit_form_{record_id}"):
            rst_no = st.text_input("RST No.", value=record.rst_no)
            truck_no = st.text_input("Truck No.", value=record.truck_no)
            do_no = st.selectbox(
                "DO No.", options, index=options.index(record.do_no) if record.do_no in options else 0
            )
            save = st.form_submit_button("💾 Save Changes", type="primary")
        if save:
            try:
                manager.update_lifting_record(record_id, rst_no, truck_no, do_no)
                st.success("Lifting record updated.")
                st_safe_rerun()
            except ValidationError as e:
                st.error(str(e))

        if st.button("🗑️ Delete Lifting Record", key=f"lift_delete_btn_{record_id}"):
            try:
                manager.delete_lifting_record(record_id)
                st_safe_rerun()
            except ValidationError as e:
                st.error(str(e))


def render() -> None:
    header("Paddy Lifting")
    manager = PaddyLiftingManager(require_season_store(), get_config())

    tab_orders, tab_lift, tab_records = st.tabs(["Release Orders", "Record Lift", "Lifting Records"])
    with tab_orders:
        _upload_release_order(manager)
        st.divider()
        _release_orders(manager)
        summary = manager.godown_summary()
        if summary:
            st.markdown("#### 🏬 Godown-wise Position")
            st.dataframe(pd.DataFrame(summary), use_container_width=True, hide_index=True)
    with tab_lift:
        _lift_form(manager)
    with tab_records:
        _lifting_records(manager)
