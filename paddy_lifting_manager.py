# paddy_lifting_manager.py
"""
Release orders and paddy lifting for one user and season.

Release orders come from uploaded Dhan Delivery Order PDFs (or manual
edits). Lifts are validated and split by ``lift_allocator`` and appended to
the season's lifting records; release orders are never changed by a lift,
their pending balance is always derived.
"""

import re
from dataclasses import replace
from typing import Dict, List, Optional

from document_extraction import validate_upload
from errors import LiftValidationError, SeasonMismatchError, ValidationError
from ledger_config import LedgerConfig, PDF_MIME_TYPES, SLIP_MIME_TYPES
from lift_allocator import (
    LiftRequest, PendingOrder, allocate_lift, compute_net_quantity, compute_tare_qtls,
    pending_orders_for_godown, plan_distribution,
)
from logger import log_info, log_warning
from records import LiftingRecord, RecordKind, ReleaseOrder, as_float, as_str, is_numeric
from stock_summary import godown_pending, godown_summary, lifted_by_order
from storage import SeasonStore

SHORT_SEASON = re.compile(r"^(20\d{2})-(\d{2})$")


def normalize_season(text: str) -> str:
    """'2023-24' -> '2023-2024'; other values are returned trimmed."""
    text = as_str(text).strip()
    match = SHORT_SEASON.match(text)
    if match:
        start = match.group(1)
        return f"{start}-{start[:2]}{match.group(2)}"
    return text


class PaddyLiftingManager:
    """Release order and lifting record operations for one season"""

    def __init__(self, season_store: SeasonStore, config: LedgerConfig):
        self.season_store = season_store
        self.config = config

    # ---------- release orders ----------
    def list_release_orders(self) -> List[ReleaseOrder]:
        return sorted(self.season_store.load(RecordKind.RELEASE_ORDERS), key=lambda o: o.do_no)

    def list_lifting_records(self) -> List[LiftingRecord]:
        return self.season_store.load(RecordKind.LIFTING_RECORDS)

    def godown_summary(self) -> List[Dict]:
        return godown_summary(self.list_release_orders(), self.list_lifting_records())

    @staticmethod
    def _upsert_order(season_store: SeasonStore, order: ReleaseOrder) -> bool:
        """Insert or replace by order number. Returns True when the order is new."""
        orders = season_store.load(RecordKind.RELEASE_ORDERS)
        created = True
        for i, existing in enumerate(orders):
            if existing.do_no == order.do_no:
                orders[i] = order
                created = False
                break
        else:
            orders.append(order)
        season_store.save(RecordKind.RELEASE_ORDERS, sorted(orders, key=lambda o: o.do_no))
        return created

    def save_release_order(self, order: ReleaseOrder) -> bool:
        if not order.do_no.strip():
            raise ValidationError("DO No. cannot be empty.")
        created = self._upsert_order(self.season_store, order)
        action = "added" if created else "updated"
        log_info(f"Release order {order.do_no} {action} in {self.season_store.username}/{self.season_store.season}")
        return created

    def import_release_order(
        self,
        data: bytes,
        mime_type: str,
        extractor,
        allow_season_switch: bool = False,
    ) -> Dict:
        """
        Read a Dhan Delivery Order PDF and save it.

        An order for another season raises SeasonMismatchError unless
        ``allow_season_switch`` is set; then it is saved into that season,
        whose name is returned as ``season`` so the caller can switch to it.
        """
        validate_upload(data, mime_type, PDF_MIME_TYPES)
        if not extractor.is_dhan_delivery_order(data, mime_type):
            raise ValidationError(
                "Incorrect document type. Please upload a 'Dhan Delivery Order' (धान डिलेवरी आर्डर) only."
            )
        order = extractor.extract_release_order(data, mime_type)
        order = replace(order, uparjan_varsh=normalize_season(order.uparjan_varsh))

        season = self.season_store.season
        if order.uparjan_varsh and order.uparjan_varsh != season:
            if not allow_season_switch:
                raise SeasonMismatchError(
                    f"This Release Order is for season '{order.uparjan_varsh}', but you are "
                    f"currently in season '{season}'.",
                    target_season=order.uparjan_varsh,
                )
            target_store = self.season_store.for_season(order.uparjan_varsh)
            created = self._upsert_order(target_store, order)
            log_info(f"Release order {order.do_no} saved into season {order.uparjan_varsh}")
            return {"order": order, "season": order.uparjan_varsh, "created": created}

        created = self.save_release_order(order)
        return {"order": order, "season": season, "created": created}

    def update_release_order(self, do_no: str, changes: Dict) -> ReleaseOrder:
        """Manual edit of an order. The order number itself cannot change."""
        orders = self.list_release_orders()
        current = next((o for o in orders if o.do_no == do_no), None)
        if current is None:
            raise ValidationError(f"Release order {do_no} not found.")
        if "do_no" in changes and as_str(changes["do_no"]).strip() != do_no:
            raise ValidationError("DO No. cannot be changed once the order is created.")

        edited = replace(current, **{k: as_str(v).strip() for k, v in changes.items()})
        if not edited.do_no.strip() or not edited.quantity.strip() or not edited.uparjan_varsh.strip():
            raise ValidationError("DO No., Quantity and Uparjan Varsh cannot be empty.")
        if not is_numeric(edited.quantity):
            raise ValidationError("Quantity must be a valid number.")

        self.season_store.save(
            RecordKind.RELEASE_ORDERS,
            [edited if o.do_no == do_no else o for o in orders],
        )
        log_info(f"Release order {do_no} edited")
        return edited

    def delete_release_order(self, do_no: str) -> int:
        """Delete an order and every lifting record made against it."""
        orders = self.list_release_orders()
        if not any(o.do_no == do_no for o in orders):
            raise ValidationError(f"Release order {do_no} not found.")
        lifts = self.list_lifting_records()
        kept = [r for r in lifts if r.do_no != do_no]

        self.season_store.save(RecordKind.RELEASE_ORDERS, [o for o in orders if o.do_no != do_no])
        self.season_store.save(RecordKind.LIFTING_RECORDS, kept)
        removed = len(lifts) - len(kept)
        log_info(f"Release order {do_no} deleted with {removed} lifting record(s)")
        return removed

    # ---------- lifting ----------
    def pending_orders(self, godown: str) -> List[PendingOrder]:
        return pending_orders_for_godown(
            godown, self.list_release_orders(), self.list_lifting_records(), self.config
        )

    def preview_lift(self, request: LiftRequest) -> Dict:
        """Tare, net and proposed split for the lift form; never raises on bad input."""
        orders = self.list_release_orders()
        lifts = self.list_lifting_records()
        new_bags = max(int(as_float(request.new_bags)), 0)
        used_bags = max(int(as_float(request.used_bags)), 0)
        tare = compute_tare_qtls(new_bags, used_bags, self.config)
        gross = as_float(request.gross_quantity)
        net = compute_net_quantity(gross, tare) if gross > 0 else 0.0
        candidates = pending_orders_for_godown(request.godown, orders, lifts, self.config)
        return {
            "tare": tare,
            "net": net,
            "godown_pending": godown_pending(request.godown, orders, lifts),
            "candidates": candidates,
            "slots": plan_distribution(net, candidates, self.config),
        }

    def record_lift(self, request: LiftRequest, second_do_no: Optional[str] = None) -> List[LiftingRecord]:
        lifts = self.list_lifting_records()
        try:
            allocation = allocate_lift(
                request, self.list_release_orders(), lifts, self.config, second_do_no=second_do_no
            )
        except ValidationError as e:
            log_warning(f"Lift rejected for godown {request.godown}: {e}")
            raise

        self.season_store.save(RecordKind.LIFTING_RECORDS, lifts + allocation.records)
        for record in allocation.records:
            log_info(
                f"Lift recorded: DO {record.do_no}, RST {record.rst_no}, "
                f"net {record.net_paddy_quantity:.3f} Qtls, bags {record.number_of_new_bags}+{record.number_of_used_bags}"
            )
        return allocation.records

    def lifting_edit_options(self, record_id: str) -> List[PendingOrder]:
        """
        Orders a lifting record may be moved to: same godown, with enough
        pending to take the whole record (its current order counts its own
        quantity back in).
        """
        lifts = self.list_lifting_records()
        record = next((r for r in lifts if r.id == record_id), None)
        if record is None:
            raise ValidationError("Lifting record not found.")
        lifted = lifted_by_order(lifts)
        options = []
        for order in self.list_release_orders():
            if order.godown != record.godown:
                continue
            pending = order.allotted_qtls - lifted.get(order.do_no, 0.0)
            if order.do_no == record.do_no:
                pending += record.net_paddy_quantity
            if pending >= record.net_paddy_quantity - self.config.tolerance:
                options.append(PendingOrder(order.do_no, pending))
        return options

    def update_lifting_record(self, record_id: str, rst_no: str, truck_no: str, do_no: str) -> LiftingRecord:
        if not as_str(rst_no).strip() or not as_str(truck_no).strip():
            raise LiftValidationError("RST No. and Truck No. cannot be empty.")
        if do_no not in {o.do_no for o in self.lifting_edit_options(record_id)}:
            raise LiftValidationError(f"DO {do_no} does not have enough pending quantity for this record.")

        lifts = self.list_lifting_records()
        updated = None
        for i, record in enumerate(lifts):
            if record.id == record_id:
                updated = replace(record, rst_no=rst_no.strip(), truck_no=truck_no.strip(), do_no=do_no)
                lifts[i] = updated
        self.season_store.save(RecordKind.LIFTING_RECORDS, lifts)
        log_info(f"Lifting record {record_id} edited (DO {do_no})")
        return updated

    def delete_lifting_record(self, record_id: str) -> None:
        lifts = self.list_lifting_records()
        kept = [r for r in lifts if r.id != record_id]
        if len(kept) == len(lifts):
            raise ValidationError("Lifting record not found.")
        self.season_store.save(RecordKind.LIFTING_RECORDS, kept)
        log_info(f"Lifting record {record_id} deleted")

    # ---------- weighing slips ----------
    @staticmethod
    def weighing_slip_to_form(slip: Dict[str, str]) -> Dict[str, str]:
        """Kanta parchi fields to lift form values (kg to Qtls, bags as new bags)."""
        form = {
            "rst_no": as_str(slip.get("rstNo")).strip(),
            "truck_no": as_str(slip.get("truckNo")).strip(),
            "gross_quantity": "",
            "new_bags": "",
        }
        kg = as_str(slip.get("liftedQuantityInKg")).replace(",", "").strip()
        if is_numeric(kg):
            form["gross_quantity"] = f"{float(kg) / 100:.3f}"
        bags = re.sub(r"\D", "", as_str(slip.get("numberOfBags")))
        if bags:
            form["new_bags"] = str(int(bags))
        return form

    def scan_weighing_slip(self, data: bytes, mime_type: str, extractor) -> Dict[str, str]:
        validate_upload(data, mime_type, SLIP_MIME_TYPES)
        return self.weighing_slip_to_form(extractor.extract_weighing_slip(data, mime_type))
