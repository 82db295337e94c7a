# lift_allocator.py
"""
Lift allocation for paddy picked up from a godown.

One weighing slip (gross weight and bag counts) becomes one or two lifting
records. Net paddy goes first to the lowest-numbered release order of the
godown that still has paddy pending. Any remainder goes in full to a
second order the user picks from the other pending orders. Bags are shared
out in proportion to each record's net quantity, and each record's tare and
gross weight are recomputed from its own bags.

Rules:
- tare (Qtls) = (new bags x new bag grams + used bags x used bag grams) / 1000 / 100
- net = gross - tare, must be > 0
- at most two orders per lift
- no order may end up more than ``tolerance`` Qtls over its allotment
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, List, Optional, Sequence

from errors import AllocationError, LiftValidationError
from ledger_config import LedgerConfig
from records import LiftingRecord, ReleaseOrder, as_float, as_int, as_str, new_record_id
from stock_summary import godown_pending, pending_by_order
from timezone_utils import get_local_time


@dataclass(frozen=True)
class LiftRequest:
    """Values from the lift form (or a scanned weighing slip)."""
    godown: str
    gross_quantity: Any
    new_bags: Any = 0
    used_bags: Any = 0
    rst_no: str = ""
    truck_no: str = ""


@dataclass(frozen=True)
class PendingOrder:
    do_no: str
    pending: float


@dataclass
class LiftSlot:
    do_no: str
    quantity: float
    max_quantity: float
    is_locked: bool
    options: List[str] = field(default_factory=list)


@dataclass
class LiftAllocation:
    gross_quantity: float
    tare_qtls: float
    net_qtls: float
    slots: List[LiftSlot]
    records: List[LiftingRecord]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_tare_qtls(new_bags: int, used_bags: int, config: LedgerConfig) -> float:
    grams = new_bags * config.new_bag_weight_g + used_bags * config.used_bag_weight_g
    return grams / 1000 / 100


def compute_net_quantity(gross_quantity: float, tare_qtls: float) -> float:
    return gross_quantity - tare_qtls


def pending_orders_for_godown(
    godown: str,
    orders: Iterable[ReleaseOrder],
    lifting_records: Iterable[LiftingRecord],
    config: LedgerConfig,
) -> List[PendingOrder]:
    """Orders of the godown with paddy still to lift, oldest number first."""
    orders = [o for o in orders if o.godown == godown]
    pending = pending_by_order(orders, lifting_records)
    candidates = [
        PendingOrder(o.do_no, pending[o.do_no])
        for o in orders
        if pending[o.do_no] > config.tolerance
    ]
    return sorted(candidates, key=lambda c: c.do_no)


def plan_distribution(
    net_quantity: float,
    candidates: Sequence[PendingOrder],
    config: LedgerConfig,
) -> List[LiftSlot]:
    if net_quantity <= 0 or not candidates:
        return []

    first = candidates[0]
    first_quantity = min(net_quantity, first.pending)
    slots = [LiftSlot(first.do_no, first_quantity, first.pending, True, [first.do_no])]

    remainder = net_quantity - first_quantity
    others = list(candidates[1:])
    if remainder > config.tolerance and others:
        # Target is chosen by the user; until then the slot is capped at its own size
        slots.append(LiftSlot("", remainder, remainder, False, [c.do_no for c in others]))
    return slots


def select_second_order(
    slots: List[LiftSlot],
    do_no: str,
    candidates: Sequence[PendingOrder],
) -> List[LiftSlot]:
    """Bind the remainder slot to the chosen order."""
    if len(slots) < 2:
        return list(slots)
    second = slots[1]
    if do_no not in second.options:
        raise LiftValidationError(f"DO {do_no} is not a pending release order for this godown.")
    pending = next(c.pending for c in candidates if c.do_no == do_no)
    return [slots[0], replace(second, do_no=do_no, max_quantity=pending)]


def apportion_counts(total: int, weights: Sequence[float]) -> List[int]:
    """
    Split ``total`` whole units in proportion to ``weights``.

    Every share but the last is rounded to the nearest unit; the last takes
    what is left, so the counts always add up to ``total``.
    """
    if not weights:
        return []
    weight_sum = sum(weights)
    counts = []
    for weight in weights[:-1]:
        share = weight / weight_sum if weight_sum > 0 else 0.0
        counts.append(round_half_up(share * total))
    counts.append(total - sum(counts))
    return counts


def build_lifting_records(
    request: LiftRequest,
    slots: Sequence[LiftSlot],
    config: LedgerConfig,
    lifted_at: Optional[str] = None,
) -> List[LiftingRecord]:
    weights = [slot.quantity for slot in slots]
    new_counts = apportion_counts(as_int(request.new_bags), weights)
    used_counts = apportion_counts(as_int(request.used_bags), weights)
    lifted_at = lifted_at or get_local_time().isoformat()

    records = []
    for slot, new_bags, used_bags in zip(slots, new_counts, used_counts):
        tare = compute_tare_qtls(new_bags, used_bags, config)
        records.append(LiftingRecord(
            id=new_record_id("lift", slot.do_no),
            rst_no=as_str(request.rst_no).strip(),
            do_no=slot.do_no,
            godown=request.godown,
            gross_lifted_quantity=slot.quantity + tare,
            total_bag_weight=tare,
            net_paddy_quantity=slot.quantity,
            truck_no=as_str(request.truck_no).strip(),
            number_of_new_bags=new_bags,
            number_of_used_bags=used_bags,
            lifting_date=lifted_at,
        ))
    return records


def _parse_gross(value: Any) -> Optional[float]:
    if value is None or as_str(value).strip() == "":
        return None
    try:
        gross = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(gross) or gross <= 0:
        return None
    return gross


def _parse_bags(value: Any) -> Optional[int]:
    if value is None or as_str(value).strip() == "":
        return 0
    number = as_float(value)
    if number < 0 or number != int(number):
        return None
    return int(number)


def allocate_lift(
    request: LiftRequest,
    orders: Sequence[ReleaseOrder],
    lifting_records: Sequence[LiftingRecord],
    config: LedgerConfig,
    second_do_no: Optional[str] = None,
    lifted_at: Optional[str] = None,
) -> LiftAllocation:
    """
    Validate a lift and split it into lifting records.

    Raises LiftValidationError for bad form input and AllocationError when
    the lift does not fit the pending balances. Nothing is persisted here.
    """
    gross = _parse_gross(request.gross_quantity)
    if gross is None:
        raise LiftValidationError("Please enter a valid, positive Gross Lifted Quantity.")

    new_bags = _parse_bags(request.new_bags)
    used_bags = _parse_bags(request.used_bags)
    if new_bags is None or used_bags is None or new_bags + used_bags <= 0:
        raise LiftValidationError("Please enter a valid number of bags for at least one bag type.")

    if not as_str(request.rst_no).strip() or not as_str(request.truck_no).strip():
        raise LiftValidationError("Please enter the RST No. and Truck No.")

    tare = compute_tare_qtls(new_bags, used_bags, config)
    net = compute_net_quantity(gross, tare)
    if net <= 0:
        raise LiftValidationError(
            f"Net paddy quantity must be positive. Bag weight ({tare:.3f} Qtls) "
            f"is not less than the gross quantity ({gross:.3f} Qtls)."
        )

    candidates = pending_orders_for_godown(request.godown, orders, lifting_records, config)
    if not candidates:
        raise AllocationError(f"No pending release orders for godown {request.godown}.")

    slots = plan_distribution(net, candidates, config)
    allocated = sum(slot.quantity for slot in slots)
    total_pending = godown_pending(request.godown, orders, lifting_records)

    # A remainder with no second order to take it means the lift is larger than the godown allows
    if net > allocated + config.tolerance or allocated > total_pending + config.tolerance:
        raise AllocationError(
            f"Total lifted quantity ({net:.3f}) exceeds pending amount for godown ({total_pending:.3f}).",
            shortfall=net - total_pending,
        )

    if len(slots) > 1:
        if not second_do_no:
            raise LiftValidationError("Please select a DO for the additional quantity.")
        slots = select_second_order(slots, second_do_no, candidates)
        second = slots[1]
        if second.quantity > second.max_quantity + config.tolerance:
            raise AllocationError(
                f"Lifted quantity for DO {second.do_no} ({second.quantity:.3f}) exceeds "
                f"its pending amount ({second.max_quantity:.3f}).",
                do_no=second.do_no,
                shortfall=second.quantity - second.max_quantity,
            )

    records = build_lifting_records(
        LiftRequest(request.godown, gross, new_bags, used_bags, request.rst_no, request.truck_no),
        slots,
        config,
        lifted_at=lifted_at,
    )
    return LiftAllocation(gross, tare, net, slots, records)
