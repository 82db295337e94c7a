# records.py
"""
Ledger record types for Miller Mitra.

Records are plain dataclasses. ``from_dict`` / ``to_dict`` convert to and
from the camelCase JSON objects kept in storage; keys we do not know about
are carried in ``extra`` and written back untouched.
"""

from __future__ import annotations

import enum
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, Optional, Tuple
from uuid import uuid4


class RecordKind(enum.Enum):
    """Season-scoped collections. The value is the storage key segment."""
    RELEASE_ORDERS = "releaseOrders"
    LIFTING_RECORDS = "liftingRecords"
    DAILY_STOCK_LOGS = "dailyStockLogs"
    RICE_DELIVERY_RECORDS = "riceDeliveryRecords"
    CMR_DEPOSIT_ORDERS = "cmrDepositOrders"
    FRK_RECORDS = "frkRecords"


PROFILES_KEY = "userProfiles"


# ---------- coercion helpers ----------
def as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def as_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def as_int(value: Any) -> int:
    return int(round(as_float(value)))


def parse_quantity(text: Any) -> float:
    """Allotted quantity of a release order; unparseable text counts as 0."""
    return as_float(as_str(text).strip())


def is_numeric(text: Any) -> bool:
    try:
        number = float(as_str(text).strip())
    except ValueError:
        return False
    return math.isfinite(number)


def new_record_id(prefix: str, suffix: Optional[str] = None) -> str:
    millis = int(time.time() * 1000)
    return f"{prefix}-{millis}-{suffix or uuid4().hex[:6]}"


class _StoredRecord:
    # (attribute, stored key, coercer)
    _FIELDS: ClassVar[Tuple[Tuple[str, str, Callable[[Any], Any]], ...]] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known = {key for _, key, _ in cls._FIELDS}
        kwargs = {attr: coerce(data.get(key)) for attr, key, coerce in cls._FIELDS}
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        for attr, key, _ in self._FIELDS:
            out[key] = getattr(self, attr)
        return out


@dataclass
class ReleaseOrder(_StoredRecord):
    do_no: str
    do_date: str = ""
    lot_no: str = ""
    issue_center: str = ""
    godown: str = ""
    quantity: str = "0"
    valid_upto: str = ""
    uparjan_varsh: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("do_no", "doNo", as_str),
        ("do_date", "doDate", as_str),
        ("lot_no", "lotNo", as_str),
        ("issue_center", "issueCenter", as_str),
        ("godown", "godown", as_str),
        ("quantity", "quantity", as_str),
        ("valid_upto", "validUpto", as_str),
        ("uparjan_varsh", "uparjanVarsh", as_str),
    )

    @property
    def allotted_qtls(self) -> float:
        return parse_quantity(self.quantity)


@dataclass
class LiftingRecord(_StoredRecord):
    id: str
    rst_no: str
    do_no: str
    godown: str
    gross_lifted_quantity: float
    total_bag_weight: float
    net_paddy_quantity: float
    truck_no: str
    number_of_new_bags: int = 0
    number_of_used_bags: int = 0
    lifting_date: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("id", "id", as_str),
        ("rst_no", "rstNo", as_str),
        ("do_no", "doNo", as_str),
        ("godown", "godown", as_str),
        ("gross_lifted_quantity", "grossLiftedQuantity", as_float),
        ("total_bag_weight", "totalBagWeight", as_float),
        ("net_paddy_quantity", "netPaddyQuantity", as_float),
        ("truck_no", "truckNo", as_str),
        ("number_of_new_bags", "numberOfNewBags", as_int),
        ("number_of_used_bags", "numberOfUsedBags", as_int),
        ("lifting_date", "liftingDate", as_str),
    )

    @property
    def total_bags(self) -> int:
        return self.number_of_new_bags + self.number_of_used_bags


@dataclass
class DailyStockLog(_StoredRecord):
    id: str
    date: str
    paddy_bags_opened_new: int = 0
    paddy_bags_opened_used: int = 0
    rice_bags_new: int = 0
    rice_quantity: float = 0.0
    bran_sold: float = 0.0
    husk_sold: float = 0.0
    sortex_broken_sold: float = 0.0
    non_sortex_broken_sold: float = 0.0
    murgidana_sold: float = 0.0
    rejection_sold: float = 0.0
    paddy_consumed_qtls: float = 0.0
    work_in_progress_qtls: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("id", "id", as_str),
        ("date", "date", as_str),
        ("paddy_bags_opened_new", "paddyBagsOpenedNew", as_int),
        ("paddy_bags_opened_used", "paddyBagsOpenedUsed", as_int),
        ("rice_bags_new", "riceBagsNew", as_int),
        ("rice_quantity", "riceQuantity", as_float),
        ("bran_sold", "branSold", as_float),
        ("husk_sold", "huskSold", as_float),
        ("sortex_broken_sold", "sortexBrokenSold", as_float),
        ("non_sortex_broken_sold", "nonSortexBrokenSold", as_float),
        ("murgidana_sold", "murgidanaSold", as_float),
        ("rejection_sold", "rejectionSold", as_float),
        ("paddy_consumed_qtls", "paddyConsumedQtls", as_float),
        ("work_in_progress_qtls", "workInProgressQtls", as_float),
    )

    # By-product columns, in the order they are shown
    BY_PRODUCT_FIELDS: ClassVar[Tuple[str, ...]] = (
        "bran_sold",
        "husk_sold",
        "sortex_broken_sold",
        "non_sortex_broken_sold",
        "murgidana_sold",
        "rejection_sold",
    )

    @property
    def bags_opened(self) -> int:
        return self.paddy_bags_opened_new + self.paddy_bags_opened_used


@dataclass
class RiceDeliveryRecord(_StoredRecord):
    id: str
    date: str
    agency: str
    do_no: str
    cmr_order_no: str = ""
    vehicle_no: str = ""
    batch_no: str = ""
    bags_delivered: int = 0
    quantity_delivered_qtls: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("id", "id", as_str),
        ("date", "date", as_str),
        ("agency", "agency", as_str),
        ("do_no", "doNo", as_str),
        ("cmr_order_no", "cmrOrderNo", as_str),
        ("vehicle_no", "vehicleNo", as_str),
        ("batch_no", "batchNo", as_str),
        ("bags_delivered", "bagsDelivered", as_int),
        ("quantity_delivered_qtls", "quantityDeliveredQtls", as_float),
    )


@dataclass
class CmrDepositOrder(_StoredRecord):
    id: str
    do_no: str
    order_no: str
    deposit_date: str = ""
    deposited_at: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("id", "id", as_str),
        ("do_no", "doNo", as_str),
        ("order_no", "orderNo", as_str),
        ("deposit_date", "depositDate", as_str),
        ("deposited_at", "depositedAt", as_str),
    )


@dataclass
class FrkRecord(_StoredRecord):
    id: str
    date: str
    invoice_no: str
    supplier: str
    quantity_qtls: float
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("id", "id", as_str),
        ("date", "date", as_str),
        ("invoice_no", "invoiceNo", as_str),
        ("supplier", "supplier", as_str),
        ("quantity_qtls", "quantityQtls", as_float),
    )


@dataclass
class UserProfile(_StoredRecord):
    username: str
    password: str
    recovery_phrase_hash: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("username", "username", as_str),
        ("password", "password", as_str),
        ("recovery_phrase_hash", "recoveryPhraseHash", as_str),
    )


RECORD_TYPES = {
    RecordKind.RELEASE_ORDERS: ReleaseOrder,
    RecordKind.LIFTING_RECORDS: LiftingRecord,
    RecordKind.DAILY_STOCK_LOGS: DailyStockLog,
    RecordKind.RICE_DELIVERY_RECORDS: RiceDeliveryRecord,
    RecordKind.CMR_DEPOSIT_ORDERS: CmrDepositOrder,
    RecordKind.FRK_RECORDS: FrkRecord,
}

