# production_ledger.py
"""
Daily production ledger (paddy opened -> rice and by-products).

Per day, in date order:
  paddy consumed = (new bags opened + used bags opened) x average bag weight
  available      = paddy consumed + previous closing WIP
  output         = rice + bran + husk + sortex broken + non-sortex broken
                   + murgidana + rejection
  closing WIP    = max(0, available - output)

The average bag weight is one figure for the whole season (net paddy lifted /
bags lifted) and is applied to every day in a pass. A day whose output is
more than ``tolerance`` above what was available makes the whole chain
invalid. A negative closing balance is not carried forward; WIP restarts at
zero on the next day.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Sequence

from errors import ChainValidationError
from ledger_config import LedgerConfig
from records import DailyStockLog, LiftingRecord

OUTPUT_FIELDS = (
    "rice_quantity",
    "bran_sold",
    "husk_sold",
    "sortex_broken_sold",
    "non_sortex_broken_sold",
    "murgidana_sold",
    "rejection_sold",
)

TOTAL_FIELDS = OUTPUT_FIELDS + (
    "paddy_bags_opened_new",
    "paddy_bags_opened_used",
    "rice_bags_new",
    "paddy_consumed_qtls",
)


@dataclass
class LedgerView:
    rows: List[DailyStockLog]          # most recent first
    totals: Dict[str, float]
    current_wip: float
    average_bag_weight: float


def average_bag_weight(lifting_records: Iterable[LiftingRecord], config: LedgerConfig) -> float:
    lifting_records = list(lifting_records)
    total_bags = sum(r.total_bags for r in lifting_records)
    if total_bags <= 0:
        return config.paddy_bag_weight_qtl
    return sum(r.net_paddy_quantity for r in lifting_records) / total_bags


def rice_quantity_from_bags(rice_bags: int, config: LedgerConfig) -> float:
    return rice_bags * config.rice_bag_weight_qtl


def log_output(log: DailyStockLog) -> float:
    return sum(getattr(log, name) for name in OUTPUT_FIELDS)


def sort_logs(logs: Iterable[DailyStockLog]) -> List[DailyStockLog]:
    # ISO dates sort chronologically as text
    return sorted(logs, key=lambda log: log.date)


def _walk_chain(logs: Sequence[DailyStockLog], avg_bag_weight: float):
    """Yield (log, consumed, available, output, closing WIP) in date order."""
    wip = 0.0
    for log in sort_logs(logs):
        consumed = log.bags_opened * avg_bag_weight
        available = consumed + wip
        output = log_output(log)
        wip = max(0.0, available - output)
        yield log, consumed, available, output, wip


def recompute_chain(logs: Sequence[DailyStockLog], avg_bag_weight: float) -> List[DailyStockLog]:
    """Copies of ``logs`` in date order with paddy consumed and WIP filled in."""
    return [
        replace(log, paddy_consumed_qtls=consumed, work_in_progress_qtls=wip)
        for log, consumed, _available, _output, wip in _walk_chain(logs, avg_bag_weight)
    ]


def validate_chain(
    logs: Sequence[DailyStockLog],
    avg_bag_weight: float,
    tolerance: float,
) -> None:
    """Raise ChainValidationError for the first day that outputs more than it had."""
    for log, _consumed, available, output, _wip in _walk_chain(logs, avg_bag_weight):
        if output > available + tolerance:
            raise ChainValidationError(log.date, output, available)


def ledger_totals(processed_logs: Iterable[DailyStockLog]) -> Dict[str, float]:
    totals = {name: 0.0 for name in TOTAL_FIELDS}
    for log in processed_logs:
        for name in TOTAL_FIELDS:
            totals[name] += getattr(log, name)
    return totals


def build_ledger_view(logs: Sequence[DailyStockLog], avg_bag_weight: float) -> LedgerView:
    processed = recompute_chain(logs, avg_bag_weight)
    current_wip = processed[-1].work_in_progress_qtls if processed else 0.0
    return LedgerView(
        rows=list(reversed(processed)),
        totals=ledger_totals(processed),
        current_wip=current_wip,
        average_bag_weight=avg_bag_weight,
    )
