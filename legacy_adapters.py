# legacy_adapters.py
"""
Adapters for records written by older versions of the app.

Each adapter takes one raw stored object and returns it in the current
shape. Adapters never mutate their input and leave current-shape objects
alone, so they can run on every load.
"""

from typing import Any, Callable, Dict

from records import RecordKind, as_int

LEGACY_NEW_BAG = "New Bag"


def adapt_lifting_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Single ``bagType`` + ``numberOfBags`` to separate new/used counts.

    Anything other than ``New Bag`` (normally ``Once Used Bag``) was a used bag.
    """
    if "numberOfNewBags" in raw or "numberOfUsedBags" in raw:
        return raw
    if "bagType" not in raw or "numberOfBags" not in raw:
        return raw
    adapted = {k: v for k, v in raw.items() if k not in ("bagType", "numberOfBags")}
    count = as_int(raw.get("numberOfBags"))
    is_new = raw.get("bagType") == LEGACY_NEW_BAG
    adapted["numberOfNewBags"] = count if is_new else 0
    adapted["numberOfUsedBags"] = 0 if is_new else count
    return adapted


def adapt_daily_log(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Single ``paddyBagsOpened`` count; all of it was new bags."""
    if "paddyBagsOpened" not in raw or "paddyBagsOpenedNew" in raw:
        return raw
    adapted = {k: v for k, v in raw.items() if k != "paddyBagsOpened"}
    adapted["paddyBagsOpenedNew"] = as_int(raw.get("paddyBagsOpened"))
    adapted["paddyBagsOpenedUsed"] = 0
    return adapted


def adapt_release_order(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Quantity stored as a JSON number instead of a decimal string."""
    quantity = raw.get("quantity")
    if isinstance(quantity, (int, float)) and not isinstance(quantity, bool):
        adapted = dict(raw)
        adapted["quantity"] = str(quantity)
        return adapted
    return raw


ADAPTERS: Dict[RecordKind, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    RecordKind.RELEASE_ORDERS: adapt_release_order,
    RecordKind.LIFTING_RECORDS: adapt_lifting_record,
    RecordKind.DAILY_STOCK_LOGS: adapt_daily_log,
}


def adapt(kind: RecordKind, raw: Dict[str, Any]) -> Dict[str, Any]:
    adapter = ADAPTERS.get(kind)
    return adapter(raw) if adapter else raw
