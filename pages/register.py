"""
Module for the 'Register' (DO register) page.
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from records import RecordKind
from stock_summary import do_register
from timezone_utils import format_iso_date
from ui import header
from pages.helpers import qtls, require_season_store


def render() -> None:
    header("DO Register")
    season_store = require_season_store()
    entries = do_register(
        season_store.load(RecordKind.RELEASE_ORDERS),
        season_store.load(RecordKind.LIFTING_RECORDS),
        season_store.load(RecordKind.RICE_DELIVERY_RECORDS),
    )
    if not entries:
        st.info("No release orders for this season.")
        return

    for entry in entries:
        order = entry["order"]
        title = (
            f"DO {order.do_no} · {order.godown} · allotted {order.allotted_qtls:,.3f} · "
            f"lifted {entry['total_lifted']:,.3f} · pending {entry['total_pending']:,.3f} Qtls"
        )
        with st.expander(title, expanded=False):
            c1, c2, c3, c4 = st.columns(4)
            c1.metric("Lifted", qtls(entry["total_lifted"]))
            c2.metric("Pending", qtls(entry["total_pending"]))
            c3.metric("Bags", f"{entry['total_bags']:,}")
            c4.metric("Rice Delivered", qtls(entry["total_delivered"]))
            st.caption(
                f"DO Date {order.do_date} · Lot {order.lot_no} · {order.issue_center} · "
                f"valid upto {order.valid_upto}"
            )

            if entry["lifting_records"]:
                st.markdown("**Lifts**")
                st.dataframe(
                    pd.DataFrame([
                        {
                            "Date": format_iso_date(r.lifting_date),
                            "RST No.": r.rst_no,
                            "Truck No.": r.truck_no,
                            "Net (Qtls)": round(r.net_paddy_quantity, 3),
                            "New Bags": r.number_of_new_bags,
                            "Used Bags": r.number_of_used_bags,
                        }
                        for r in entry["lifting_records"]
                    ]),
                    use_container_width=True,
                    hide_index=True,
                )
            if entry["deliveries"]:
                st.markdown("**Deliveries**")
                st.dataframe(
                    pd.DataFrame([
                        {
                            "Date": format_iso_date(d.date),
                            "Agency": d.agency,
                            "CMR Order No.": d.cmr_order_no,
                            "Vehicle No.": d.vehicle_no,
                            "Bags": d.bags_delivered,
                            "Quantity (Qtls)": round(d.quantity_delivered_qtls, 3),
                        }
                        for d in entry["deliveries"]
                    ]),
                    use_container_width=True,
                    hide_index=True,
                )
