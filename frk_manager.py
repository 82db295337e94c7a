# frk_manager.py
"""
FRK (fortified rice kernel) purchase records for one user and season.
"""

from typing import Dict, List

from errors import ValidationError
from logger import log_info
from records import FrkRecord, RecordKind, as_float, as_str, new_record_id
from storage import SeasonStore


class FrkManager:
    """FRK purchase records"""

    def __init__(self, season_store: SeasonStore):
        self.season_store = season_store

    def list_records(self) -> List[FrkRecord]:
        """Newest first."""
        return sorted(self.season_store.load(RecordKind.FRK_RECORDS), key=lambda r: r.date, reverse=True)

    def total_purchased(self) -> float:
        return sum(r.quantity_qtls for r in self.season_store.load(RecordKind.FRK_RECORDS))

    def add_record(self, entry: Dict) -> FrkRecord:
        date = as_str(entry.get("date")).strip()
        invoice_no = as_str(entry.get("invoice_no")).strip()
        supplier = as_str(entry.get("supplier")).strip()
        quantity = as_float(entry.get("quantity_qtls"))
        if not date or not invoice_no or not supplier or quantity <= 0:
            raise ValidationError("Please fill in all fields with valid data.")

        record = FrkRecord(
            id=new_record_id("frk"),
            date=date,
            invoice_no=invoice_no,
            supplier=supplier,
            quantity_qtls=quantity,
        )
        records = self.season_store.load(RecordKind.FRK_RECORDS) + [record]
        self.season_store.save(RecordKind.FRK_RECORDS, sorted(records, key=lambda r: r.date, reverse=True))
        log_info(f"FRK purchase recorded: {quantity:.3f} Qtls from {supplier} (invoice {invoice_no})")
        return record

    def delete_record(self, record_id: str) -> None:
        records = self.season_store.load(RecordKind.FRK_RECORDS)
        kept = [r for r in records if r.id != record_id]
        if len(kept) == len(records):
            raise ValidationError("FRK record not found.")
        self.season_store.save(RecordKind.FRK_RECORDS, kept)
        log_info(f"FRK record {record_id} deleted")
