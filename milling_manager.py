# milling_manager.py
"""
Daily stock log (milling) operations for one user and season.

Every add or edit re-validates the whole chain of days before anything is
written, so a change to an early day cannot leave a later day producing
more than it had. The stored derived fields (paddy consumed, WIP) are
rewritten from a full recompute on every save.
"""

from typing import Dict, List, Optional

from errors import LogValidationError, ValidationError
from ledger_config import LedgerConfig
from logger import log_info, log_warning
from production_ledger import (
    LedgerView, average_bag_weight, build_ledger_view, recompute_chain,
    rice_quantity_from_bags, validate_chain,
)
from records import DailyStockLog, RecordKind, as_float, as_int, as_str, new_record_id
from stock_summary import bag_summary, paddy_stock
from storage import SeasonStore

ENTRY_INT_FIELDS = ("paddy_bags_opened_new", "paddy_bags_opened_used", "rice_bags_new")
ENTRY_FLOAT_FIELDS = DailyStockLog.BY_PRODUCT_FIELDS


class MillingManager:
    """Daily stock log operations for one season"""

    def __init__(self, season_store: SeasonStore, config: LedgerConfig):
        self.season_store = season_store
        self.config = config

    def list_logs(self) -> List[DailyStockLog]:
        return self.season_store.load(RecordKind.DAILY_STOCK_LOGS)

    def average_bag_weight(self) -> float:
        return average_bag_weight(self.season_store.load(RecordKind.LIFTING_RECORDS), self.config)

    def ledger_view(self) -> LedgerView:
        return build_ledger_view(self.list_logs(), self.average_bag_weight())

    def _entry_to_log(self, entry: Dict, log_id: str, extra: Optional[Dict] = None) -> DailyStockLog:
        """Form values to a log. Rice quantity always follows the rice bag count."""
        date = as_str(entry.get("date")).strip()
        if not date:
            raise LogValidationError("Please select a Date for the log entry.")

        values = {name: as_int(entry.get(name)) for name in ENTRY_INT_FIELDS}
        values.update({name: as_float(entry.get(name)) for name in ENTRY_FLOAT_FIELDS})
        negatives = [name for name, value in values.items() if value < 0]
        if negatives:
            raise LogValidationError("Bag counts and quantities cannot be negative.")

        return DailyStockLog(
            id=log_id,
            date=date,
            rice_quantity=rice_quantity_from_bags(values["rice_bags_new"], self.config),
            **values,
            extra=dict(extra or {}),
        )

    def _commit(self, logs: List[DailyStockLog], action: str) -> None:
        avg = self.average_bag_weight()
        try:
            validate_chain(logs, avg, self.config.tolerance)
        except ValidationError as e:
            log_warning(f"Daily log {action} rejected: {e}")
            raise
        self.season_store.save(RecordKind.DAILY_STOCK_LOGS, recompute_chain(logs, avg))

    def add_log(self, entry: Dict) -> DailyStockLog:
        log = self._entry_to_log(entry, new_record_id("daily"))
        self._commit(self.list_logs() + [log], "add")
        log_info(f"Daily log added for {log.date}: rice {log.rice_quantity:.3f} Qtls, bags opened {log.bags_opened}")
        return log

    def update_log(self, log_id: str, entry: Dict) -> DailyStockLog:
        logs = self.list_logs()
        existing = next((log for log in logs if log.id == log_id), None)
        if existing is None:
            raise LogValidationError("Daily log not found.")
        edited = self._entry_to_log(entry, log_id, existing.extra)
        self._commit([edited if log.id == log_id else log for log in logs], "edit")
        log_info(f"Daily log {log_id} edited ({edited.date})")
        return edited

    def delete_log(self, log_id: str) -> None:
        logs = self.list_logs()
        kept = [log for log in logs if log.id != log_id]
        if len(kept) == len(logs):
            raise LogValidationError("Daily log not found.")
        self.season_store.save(RecordKind.DAILY_STOCK_LOGS, recompute_chain(kept, self.average_bag_weight()))
        log_info(f"Daily log {log_id} deleted")

    def stock_summary(self, rice_quantity: Optional[float] = None) -> Dict:
        """Bag and paddy position shown above the daily log."""
        lifts = self.season_store.load(RecordKind.LIFTING_RECORDS)
        deliveries = self.season_store.load(RecordKind.RICE_DELIVERY_RECORDS)
        logs = self.list_logs()
        avg = average_bag_weight(lifts, self.config)
        view = build_ledger_view(logs, avg)
        paddy = paddy_stock(lifts, logs, avg)
        summary = {
            "average_bag_weight": avg,
            "bags": bag_summary(lifts, logs, deliveries),
            "paddy_stock": paddy,
            "current_wip": view.current_wip,
            "paddy_on_hand": paddy["stock"] + view.current_wip,
        }
        if rice_quantity is not None:
            summary["required_frk"] = rice_quantity * self.config.frk_blend_ratio
        return summary

    @staticmethod
    def entry_from_log(log: DailyStockLog) -> Dict:
        """Current values of a log as form defaults for editing."""
        entry = {"date": log.date}
        for name in ENTRY_INT_FIELDS + ENTRY_FLOAT_FIELDS:
            entry[name] = getattr(log, name)
        return entry
