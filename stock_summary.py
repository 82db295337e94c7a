# stock_summary.py
"""
Stock and balance summaries for Miller Mitra dashboards and reports.

The module-level functions are plain reductions over record lists and are
recomputed from scratch on every page render. ``DashboardMetrics`` bundles
them per season for the pages.
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Sequence

from ledger_config import AGENCIES, LedgerConfig
from records import (
    DailyStockLog, FrkRecord, LiftingRecord, RecordKind, ReleaseOrder, RiceDeliveryRecord,
)
from timezone_utils import LOCAL_TIMEZONE, parse_iso_datetime


# ---------- paddy lifting ----------
def lifted_by_order(lifting_records: Iterable[LiftingRecord]) -> Dict[str, float]:
    lifted: Dict[str, float] = defaultdict(float)
    for record in lifting_records:
        lifted[record.do_no] += record.net_paddy_quantity
    return lifted


def pending_by_order(
    orders: Iterable[ReleaseOrder],
    lifting_records: Iterable[LiftingRecord],
) -> Dict[str, float]:
    """Allotted minus net lifted for every order (may be negative)."""
    lifted = lifted_by_order(lifting_records)
    return {o.do_no: o.allotted_qtls - lifted.get(o.do_no, 0.0) for o in orders}


def godown_summary(
    orders: Iterable[ReleaseOrder],
    lifting_records: Iterable[LiftingRecord],
) -> List[Dict]:
    """Allotted, lifted and pending per godown, sorted by godown name."""
    summary: Dict[str, Dict[str, float]] = {}
    for order in orders:
        row = summary.setdefault(order.godown, {"allotted": 0.0, "lifted": 0.0})
        row["allotted"] += order.allotted_qtls
    for record in lifting_records:
        # Lifts against godowns with no release order on file are not counted
        if record.godown in summary:
            summary[record.godown]["lifted"] += record.net_paddy_quantity
    return [
        {
            "godown": godown,
            "allotted": data["allotted"],
            "lifted": data["lifted"],
            "pending": data["allotted"] - data["lifted"],
        }
        for godown, data in sorted(summary.items())
    ]


def godown_pending(
    godown: str,
    orders: Iterable[ReleaseOrder],
    lifting_records: Iterable[LiftingRecord],
) -> float:
    for row in godown_summary(orders, lifting_records):
        if row["godown"] == godown:
            return row["pending"]
    return 0.0


def total_pending(orders: Sequence[ReleaseOrder], lifting_records: Sequence[LiftingRecord]) -> float:
    return sum(row["pending"] for row in godown_summary(orders, lifting_records))


# ---------- rice and FRK ----------
def total_rice_produced(logs: Iterable[DailyStockLog]) -> float:
    return sum(log.rice_quantity for log in logs)


def total_rice_delivered(deliveries: Iterable[RiceDeliveryRecord]) -> float:
    return sum(d.quantity_delivered_qtls for d in deliveries)


def plain_rice_stock(
    logs: Iterable[DailyStockLog],
    deliveries: Sequence[RiceDeliveryRecord],
    config: LedgerConfig,
) -> float:
    """Rice produced minus the plain (non-FRK) part of every delivery."""
    delivered = total_rice_delivered(deliveries)
    return total_rice_produced(logs) - delivered * (1 - config.frk_blend_ratio)


def frk_stock(
    frk_records: Iterable[FrkRecord],
    deliveries: Sequence[RiceDeliveryRecord],
    config: LedgerConfig,
) -> float:
    purchased = sum(r.quantity_qtls for r in frk_records)
    return purchased - total_rice_delivered(deliveries) * config.frk_blend_ratio


def rice_stock_bags(stock_qtls: float, config: LedgerConfig) -> int:
    if stock_qtls <= 0:
        return 0
    return int(math.floor(stock_qtls / config.rice_bag_weight_qtl))


def do_wise_summary(
    orders: Iterable[ReleaseOrder],
    lifting_records: Sequence[LiftingRecord],
    deliveries: Sequence[RiceDeliveryRecord],
    config: LedgerConfig,
) -> List[Dict]:
    """
    Paddy and rice position per release order, sorted by order number.

    Rice still owed is the entitlement (lifted x turnout) less the plain rice
    part of what was delivered; the FRK share of a delivery does not count.
    """
    lifted = lifted_by_order(lifting_records)
    delivered: Dict[str, float] = defaultdict(float)
    for d in deliveries:
        delivered[d.do_no] += d.quantity_delivered_qtls

    rows = []
    for order in orders:
        paddy_lifted = lifted.get(order.do_no, 0.0)
        rice_delivered = delivered.get(order.do_no, 0.0)
        entitlement = paddy_lifted * config.cmr_turnout_ratio
        rows.append({
            "do_no": order.do_no,
            "godown": order.godown,
            "paddy_allotted": order.allotted_qtls,
            "paddy_lifted": paddy_lifted,
            "paddy_pending": order.allotted_qtls - paddy_lifted,
            "rice_entitlement": entitlement,
            "rice_delivered": rice_delivered,
            "rice_pending": entitlement - rice_delivered * (1 - config.frk_blend_ratio),
        })
    return sorted(rows, key=lambda r: r["do_no"])


def delivery_summary(deliveries: Sequence[RiceDeliveryRecord]) -> Dict:
    """Total delivered and the share of each agency."""
    total = total_rice_delivered(deliveries)
    by_agency = {agency: 0.0 for agency in AGENCIES}
    for d in deliveries:
        by_agency[d.agency] = by_agency.get(d.agency, 0.0) + d.quantity_delivered_qtls
    share = {
        agency: (qty / total * 100 if total > 0 else 0.0)
        for agency, qty in by_agency.items()
    }
    return {
        "total_delivered": total,
        "total_bags": sum(d.bags_delivered for d in deliveries),
        "by_agency": by_agency,
        "share_percent": share,
    }


# ---------- bags and paddy ----------
def empty_bag_availability(
    logs: Iterable[DailyStockLog],
    deliveries: Iterable[RiceDeliveryRecord],
) -> int:
    """Empty bags come from opened new paddy bags and go out with rice deliveries."""
    opened_new = sum(log.paddy_bags_opened_new for log in logs)
    return opened_new - sum(d.bags_delivered for d in deliveries)


def bag_summary(
    lifting_records: Sequence[LiftingRecord],
    logs: Sequence[DailyStockLog],
    deliveries: Sequence[RiceDeliveryRecord] = (),
) -> Dict[str, int]:
    lifted_new = sum(r.number_of_new_bags for r in lifting_records)
    lifted_used = sum(r.number_of_used_bags for r in lifting_records)
    opened_new = sum(log.paddy_bags_opened_new for log in logs)
    opened_used = sum(log.paddy_bags_opened_used for log in logs)
    return {
        "lifted_new": lifted_new,
        "lifted_used": lifted_used,
        "opened_new": opened_new,
        "opened_used": opened_used,
        "stock_new": lifted_new - opened_new,
        "stock_used": lifted_used - opened_used,
        "stock_total": (lifted_new + lifted_used) - (opened_new + opened_used),
        "empty_bags_available": empty_bag_availability(logs, deliveries),
    }


def paddy_stock(
    lifting_records: Sequence[LiftingRecord],
    logs: Sequence[DailyStockLog],
    average_bag_weight_qtls: float,
) -> Dict[str, float]:
    """Paddy lifted but not yet opened for milling."""
    lifted = sum(r.net_paddy_quantity for r in lifting_records)
    consumed = sum(log.bags_opened * average_bag_weight_qtls for log in logs)
    stock = lifted - consumed
    bags = round(stock / average_bag_weight_qtls) if stock > 0 and average_bag_weight_qtls > 0 else 0
    return {"lifted": lifted, "consumed": consumed, "stock": stock, "stock_bags": int(bags)}


def by_product_totals(logs: Iterable[DailyStockLog]) -> Dict[str, float]:
    totals = {name: 0.0 for name in DailyStockLog.BY_PRODUCT_FIELDS}
    for log in logs:
        for name in DailyStockLog.BY_PRODUCT_FIELDS:
            totals[name] += getattr(log, name)
    return totals


TURNOUT_SLICES = (
    ("Rice", "#f59e0b"),
    ("Husk", "#854d0e"),
    ("Bran", "#d97706"),
    ("Broken Rice", "#fcd34d"),
    ("Murgidana", "#fbbf24"),
    ("WIP / Loss", "#9ca3af"),
)


def turnout_breakdown(processed_logs: Iterable[DailyStockLog]) -> List[Dict]:
    """
    Where the consumed paddy went, as slices of the total consumed.

    Expects logs that already carry ``paddy_consumed_qtls``. Rejection is not
    a turnout product and falls into WIP / Loss. Slices of 0.001 Qtls or less
    are dropped; an empty list means nothing has been consumed yet.
    """
    consumed = rice = husk = bran = broken = murgidana = 0.0
    for log in processed_logs:
        consumed += log.paddy_consumed_qtls
        rice += log.rice_quantity
        husk += log.husk_sold
        bran += log.bran_sold
        broken += log.sortex_broken_sold + log.non_sortex_broken_sold
        murgidana += log.murgidana_sold
    if consumed <= 0:
        return []

    loss_or_wip = consumed - (rice + husk + bran + broken + murgidana)
    values = [rice, husk, bran, broken, murgidana, max(loss_or_wip, 0.0)]
    return [
        {"name": name, "value": value, "percentage": value / consumed * 100, "color": color}
        for (name, color), value in zip(TURNOUT_SLICES, values)
        if value > 0.001
    ]


# ---------- lifting report ----------
def _day_bounds(start: Optional[date], end: Optional[date]):
    start_dt = LOCAL_TIMEZONE.localize(datetime.combine(start, time.min)) if start else None
    end_dt = LOCAL_TIMEZONE.localize(datetime.combine(end, time.max)) if end else None
    return start_dt, end_dt


def filter_lifting_report(
    lifting_records: Iterable[LiftingRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
    godown: Optional[str] = None,
) -> Dict:
    """Lifting records in the date range (end day included), newest first, with totals."""
    start_dt, end_dt = _day_bounds(start, end)
    rows = []
    for record in lifting_records:
        lifted_at = parse_iso_datetime(record.lifting_date)
        if (start_dt or end_dt) and lifted_at is None:
            continue
        if start_dt and lifted_at < start_dt:
            continue
        if end_dt and lifted_at > end_dt:
            continue
        if godown and godown != "All" and record.godown != godown:
            continue
        rows.append((lifted_at, record))

    rows.sort(key=lambda item: item[0] or datetime.min.replace(tzinfo=LOCAL_TIMEZONE), reverse=True)
    records = [record for _, record in rows]
    return {
        "records": records,
        "totals": {
            "gross": sum(r.gross_lifted_quantity for r in records),
            "tare": sum(r.total_bag_weight for r in records),
            "net": sum(r.net_paddy_quantity for r in records),
            "new_bags": sum(r.number_of_new_bags for r in records),
            "used_bags": sum(r.number_of_used_bags for r in records),
        },
    }


def lifting_godowns(lifting_records: Iterable[LiftingRecord]) -> List[str]:
    return sorted({r.godown for r in lifting_records})


# ---------- register ----------
def do_register(
    orders: Iterable[ReleaseOrder],
    lifting_records: Sequence[LiftingRecord],
    deliveries: Sequence[RiceDeliveryRecord],
) -> List[Dict]:
    """Every release order with its lifts, deliveries and running totals."""
    entries = []
    for order in sorted(orders, key=lambda o: o.do_no):
        lifts = sorted(
            (r for r in lifting_records if r.do_no == order.do_no),
            key=lambda r: r.lifting_date,
        )
        order_deliveries = sorted(
            (d for d in deliveries if d.do_no == order.do_no),
            key=lambda d: d.date,
        )
        lifted = sum(r.net_paddy_quantity for r in lifts)
        entries.append({
            "order": order,
            "lifting_records": lifts,
            "deliveries": order_deliveries,
            "total_lifted": lifted,
            "total_pending": order.allotted_qtls - lifted,
            "total_bags": sum(r.total_bags for r in lifts),
            "total_delivered": sum(d.quantity_delivered_qtls for d in order_deliveries),
        })
    return entries


class DashboardMetrics:
    """Season-level figures for the dashboard, milling and delivery pages"""

    @staticmethod
    def get_season_summary(season_store, config: LedgerConfig) -> Dict:
        from production_ledger import average_bag_weight, build_ledger_view

        orders = season_store.load(RecordKind.RELEASE_ORDERS)
        lifts = season_store.load(RecordKind.LIFTING_RECORDS)
        logs = season_store.load(RecordKind.DAILY_STOCK_LOGS)
        deliveries = season_store.load(RecordKind.RICE_DELIVERY_RECORDS)
        frk = season_store.load(RecordKind.FRK_RECORDS)

        avg = average_bag_weight(lifts, config)
        view = build_ledger_view(logs, avg)
        godowns = godown_summary(orders, lifts)
        allotted = sum(g["allotted"] for g in godowns)
        lifted = sum(g["lifted"] for g in godowns)
        paddy = paddy_stock(lifts, logs, avg)
        rice = plain_rice_stock(logs, deliveries, config)

        return {
            "release_orders": len(orders),
            "total_allotted": allotted,
            "total_lifted": lifted,
            "total_pending": total_pending(orders, lifts),
            "godowns": godowns,
            "average_bag_weight": avg,
            "rice_produced": total_rice_produced(logs),
            "current_wip": view.current_wip,
            "paddy_stock": paddy,
            # Paddy on hand: unopened stock plus what is still in process
            "paddy_on_hand": paddy["stock"] + view.current_wip,
            "plain_rice_stock": rice,
            "plain_rice_stock_bags": rice_stock_bags(rice, config),
            "frk_stock": frk_stock(frk, deliveries, config),
            "bags": bag_summary(lifts, logs, deliveries),
            "by_products": by_product_totals(logs),
            "deliveries": delivery_summary(deliveries),
            "do_wise": do_wise_summary(orders, lifts, deliveries, config),
            "turnout": turnout_breakdown(view.rows),
        }
