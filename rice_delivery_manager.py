# rice_delivery_manager.py
"""
CMR deposit orders and rice deliveries for one user and season.

A CMR deposit order can only be uploaded for a release order whose paddy
has been fully lifted. A delivery (challan) is made against a CMR deposit
order and must be covered by plain rice stock, FRK stock and the rice
still owed on its release order.
"""

from dataclasses import replace
from typing import Dict, List

from document_extraction import validate_upload
from errors import DeliveryValidationError, StockError, ValidationError
from ledger_config import AGENCIES, LedgerConfig, PDF_MIME_TYPES
from logger import log_info, log_warning
from records import CmrDepositOrder, RecordKind, RiceDeliveryRecord, as_int, as_str, new_record_id
from stock_summary import (
    delivery_summary, frk_stock, lifted_by_order, plain_rice_stock, rice_stock_bags,
)
from storage import SeasonStore


class RiceDeliveryManager:
    """CMR deposit order and delivery challan operations for one season"""

    def __init__(self, season_store: SeasonStore, config: LedgerConfig):
        self.season_store = season_store
        self.config = config

    # ---------- CMR deposit orders ----------
    def list_cmr_orders(self) -> List[CmrDepositOrder]:
        return sorted(self.season_store.load(RecordKind.CMR_DEPOSIT_ORDERS), key=lambda o: o.order_no)

    def add_cmr_order(self, fields: Dict[str, str]) -> CmrDepositOrder:
        """Check a CMR deposit order against the season's records and save it."""
        do_no = as_str(fields.get("doNo")).strip()
        order_no = as_str(fields.get("orderNo")).strip()
        if not order_no:
            raise ValidationError("CMR Deposit Order No. cannot be empty.")

        orders = {o.do_no: o for o in self.season_store.load(RecordKind.RELEASE_ORDERS)}
        if not do_no or do_no not in orders:
            raise ValidationError(
                f"The DO Number '{do_no}' from the PDF was not found in your saved Release Orders "
                f"for this season. Please upload the correct RO first."
            )

        lifted = lifted_by_order(self.season_store.load(RecordKind.LIFTING_RECORDS)).get(do_no, 0.0)
        pending = orders[do_no].allotted_qtls - lifted
        if pending > self.config.tolerance:
            raise ValidationError(
                f"Paddy lifting is still pending for DO {do_no}. You cannot upload a CMR until "
                f"lifting is complete. Pending: {pending:.3f} Qtls."
            )

        cmr_orders = self.list_cmr_orders()
        if any(o.order_no == order_no for o in cmr_orders):
            raise ValidationError(
                f"CMR Deposit Order with Order No. '{order_no}' has already been uploaded for this season."
            )

        cmr = CmrDepositOrder(
            id=new_record_id("cmr", order_no),
            do_no=do_no,
            order_no=order_no,
            deposit_date=as_str(fields.get("depositDate")),
            deposited_at=as_str(fields.get("depositedAt")),
        )
        self.season_store.save(
            RecordKind.CMR_DEPOSIT_ORDERS,
            sorted(cmr_orders + [cmr], key=lambda o: o.order_no),
        )
        log_info(f"CMR deposit order {order_no} added for DO {do_no}")
        return cmr

    def upload_cmr_order(self, data: bytes, mime_type: str, extractor) -> CmrDepositOrder:
        validate_upload(data, mime_type, PDF_MIME_TYPES)
        if not extractor.is_cmr_deposit_order(data, mime_type):
            raise ValidationError("Incorrect document type. Please upload a 'CMR Deposit Order' only.")
        return self.add_cmr_order(extractor.extract_cmr_order(data, mime_type))

    def update_cmr_order(self, cmr_id: str, changes: Dict[str, str]) -> CmrDepositOrder:
        cmr_orders = self.list_cmr_orders()
        current = next((o for o in cmr_orders if o.id == cmr_id), None)
        if current is None:
            raise ValidationError("CMR Deposit Order not found.")
        edited = replace(current, **{k: as_str(v).strip() for k, v in changes.items()})
        if not edited.order_no or not edited.do_no:
            raise ValidationError("DO No. and Order No. cannot be empty.")
        if any(o.order_no == edited.order_no and o.id != cmr_id for o in cmr_orders):
            raise ValidationError(f"CMR Deposit Order with Order No. '{edited.order_no}' already exists.")

        self.season_store.save(
            RecordKind.CMR_DEPOSIT_ORDERS,
            sorted((edited if o.id == cmr_id else o for o in cmr_orders), key=lambda o: o.order_no),
        )
        log_info(f"CMR deposit order {edited.order_no} edited")
        return edited

    def delete_cmr_order(self, cmr_id: str) -> None:
        """Deliveries already made against the order are kept."""
        cmr_orders = self.list_cmr_orders()
        kept = [o for o in cmr_orders if o.id != cmr_id]
        if len(kept) == len(cmr_orders):
            raise ValidationError("CMR Deposit Order not found.")
        self.season_store.save(RecordKind.CMR_DEPOSIT_ORDERS, kept)
        log_info(f"CMR deposit order {cmr_id} deleted")

    # ---------- deliveries ----------
    def list_deliveries(self) -> List[RiceDeliveryRecord]:
        """Newest first."""
        return sorted(self.season_store.load(RecordKind.RICE_DELIVERY_RECORDS), key=lambda d: d.date, reverse=True)

    def rice_entitlement_remaining(self, do_no: str) -> float:
        """
        Rice still deliverable against an order: allotted paddy x turnout
        minus everything already delivered against it.
        """
        orders = {o.do_no: o for o in self.season_store.load(RecordKind.RELEASE_ORDERS)}
        if do_no not in orders:
            raise DeliveryValidationError("Selected DO Number is not valid.")
        delivered = sum(
            d.quantity_delivered_qtls
            for d in self.season_store.load(RecordKind.RICE_DELIVERY_RECORDS)
            if d.do_no == do_no
        )
        return orders[do_no].allotted_qtls * self.config.cmr_turnout_ratio - delivered

    def add_delivery(self, entry: Dict) -> RiceDeliveryRecord:
        date = as_str(entry.get("date")).strip()
        do_no = as_str(entry.get("do_no")).strip()
        vehicle_no = as_str(entry.get("vehicle_no")).strip()
        batch_no = as_str(entry.get("batch_no")).strip()
        agency = as_str(entry.get("agency")).strip() or AGENCIES[0]
        bags = as_int(entry.get("bags_delivered"))
        if not date or not do_no or not vehicle_no or not batch_no or bags <= 0:
            raise DeliveryValidationError(
                "Please fill in all fields with valid data (Agency, Date, DO, Vehicle No, Batch No, "
                "and positive number of Bags)."
            )
        if agency not in AGENCIES:
            raise DeliveryValidationError(f"Agency must be one of: {', '.join(AGENCIES)}.")

        quantity = bags * self.config.rice_bag_weight_qtl
        logs = self.season_store.load(RecordKind.DAILY_STOCK_LOGS)
        deliveries = self.season_store.load(RecordKind.RICE_DELIVERY_RECORDS)
        frk_records = self.season_store.load(RecordKind.FRK_RECORDS)
        tol = self.config.tolerance

        plain_needed = quantity * (1 - self.config.frk_blend_ratio)
        plain_available = plain_rice_stock(logs, deliveries, self.config)
        if plain_needed > plain_available + tol:
            log_warning(f"Delivery rejected: plain rice {plain_needed:.3f} > {plain_available:.3f}")
            raise StockError(
                f"Not enough plain rice stock. Required: {plain_needed:.3f} Qtls, "
                f"Available: {plain_available:.3f} Qtls."
            )

        frk_needed = quantity * self.config.frk_blend_ratio
        frk_available = frk_stock(frk_records, deliveries, self.config)
        if frk_needed > frk_available + tol:
            log_warning(f"Delivery rejected: FRK {frk_needed:.4f} > {frk_available:.4f}")
            raise StockError(
                f"Not enough FRK stock. Required: {frk_needed:.4f} Qtls, Available: {frk_available:.4f} Qtls."
            )

        remaining = self.rice_entitlement_remaining(do_no)
        if quantity > remaining + tol:
            raise StockError(
                f"Cannot deliver {quantity:.3f} Qtls. Only {remaining:.3f} Qtls remaining for DO {do_no}."
            )

        record = RiceDeliveryRecord(
            id=new_record_id("delivery"),
            date=date,
            agency=agency,
            do_no=do_no,
            cmr_order_no=as_str(entry.get("cmr_order_no")).strip(),
            vehicle_no=vehicle_no,
            batch_no=batch_no,
            bags_delivered=bags,
            quantity_delivered_qtls=quantity,
        )
        self.season_store.save(RecordKind.RICE_DELIVERY_RECORDS, deliveries + [record])
        log_info(f"Rice delivery to {agency}: {quantity:.3f} Qtls ({bags} bags) against DO {do_no}")
        return record

    def delete_delivery(self, delivery_id: str) -> None:
        deliveries = self.season_store.load(RecordKind.RICE_DELIVERY_RECORDS)
        kept = [d for d in deliveries if d.id != delivery_id]
        if len(kept) == len(deliveries):
            raise DeliveryValidationError("Delivery record not found.")
        self.season_store.save(RecordKind.RICE_DELIVERY_RECORDS, kept)
        log_info(f"Rice delivery {delivery_id} deleted")

    def delivery_summary(self) -> Dict:
        logs = self.season_store.load(RecordKind.DAILY_STOCK_LOGS)
        deliveries = self.season_store.load(RecordKind.RICE_DELIVERY_RECORDS)
        frk_records = self.season_store.load(RecordKind.FRK_RECORDS)
        plain = plain_rice_stock(logs, deliveries, self.config)
        summary = delivery_summary(deliveries)
        summary.update({
            "plain_rice_stock": plain,
            "plain_rice_stock_bags": rice_stock_bags(plain, self.config),
            "frk_stock": frk_stock(frk_records, deliveries, self.config),
        })
        return summary
