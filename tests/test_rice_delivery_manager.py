import pytest

from errors import DeliveryValidationError, ExtractionError, StockError, ValidationError
from frk_manager import FrkManager
from milling_manager import MillingManager
from records import LiftingRecord, RecordKind, ReleaseOrder
from rice_delivery_manager import RiceDeliveryManager

from conftest import FakeExtractor


def _lift(net, bags, do_no="DO-1"):
    tare = bags * 0.0058
    return LiftingRecord(f"lift-{do_no}-{net}", "101", do_no, "G", net + tare, tare, net, "MP09AB1234",
                         number_of_new_bags=bags)


def _delivery(bags, do_no="DO-1", agency="FCI", day=5):
    return {
        "date": f"2024-12-{day:02d}", "agency": agency, "do_no": do_no, "cmr_order_no": "CMR-1",
        "vehicle_no": "MP09GA1111", "batch_no": "B-1", "bags_delivered": bags,
    }


@pytest.fixture
def manager(season_store, config):
    season_store.save(RecordKind.RELEASE_ORDERS, [
        ReleaseOrder(do_no="DO-1", godown="G", quantity="1000", uparjan_varsh="2024-2025"),
        ReleaseOrder(do_no="DO-2", godown="G", quantity="200", uparjan_varsh="2024-2025"),
    ])
    # DO-1 fully lifted at 0.4 Qtls per bag, DO-2 untouched
    season_store.save(RecordKind.LIFTING_RECORDS, [_lift(1000.0, 2500)])
    return RiceDeliveryManager(season_store, config)


@pytest.fixture
def milled(manager, season_store, config):
    # all 2500 bags opened -> 1000 Qtls paddy, 1340 rice bags -> 670 Qtls rice
    MillingManager(season_store, config).add_log(
        {"date": "2024-12-01", "paddy_bags_opened_new": 2500, "rice_bags_new": 1340}
    )
    return manager


def _buy_frk(season_store, quantity):
    FrkManager(season_store).add_record(
        {"date": "2024-12-01", "invoice_no": "INV-1", "supplier": "Agro Foods", "quantity_qtls": quantity}
    )


# ---------- CMR deposit orders ----------
def test_add_cmr_order(manager):
    cmr = manager.add_cmr_order({"doNo": "DO-1", "orderNo": "CMR-1", "depositDate": "02-12-2024", "depositedAt": "FCI"})
    assert cmr.id.startswith("cmr-")
    assert [o.order_no for o in manager.list_cmr_orders()] == ["CMR-1"]

    with pytest.raises(ValidationError, match="already been uploaded"):
        manager.add_cmr_order({"doNo": "DO-1", "orderNo": "CMR-1"})


@pytest.mark.parametrize("fields, message", [
    ({"doNo": "DO-1", "orderNo": " "}, "cannot be empty"),
    ({"doNo": "DO-9", "orderNo": "CMR-1"}, "was not found in your saved Release Orders"),
    ({"doNo": "DO-2", "orderNo": "CMR-1"}, "Paddy lifting is still pending for DO DO-2"),
])
def test_cmr_order_gates(manager, fields, message):
    with pytest.raises(ValidationError, match=message):
        manager.add_cmr_order(fields)
    assert manager.list_cmr_orders() == []


def test_upload_cmr_order(manager):
    extractor = FakeExtractor(cmr={"doNo": "DO-1", "orderNo": "CMR-7", "depositDate": "", "depositedAt": ""})
    assert manager.upload_cmr_order(b"%PDF", "application/pdf", extractor).order_no == "CMR-7"

    with pytest.raises(ValidationError, match="CMR Deposit Order' only"):
        manager.upload_cmr_order(b"%PDF", "application/pdf", FakeExtractor(is_cmr=False))
    with pytest.raises(ExtractionError):
        manager.upload_cmr_order(b"img", "image/png", extractor)


def test_update_and_delete_cmr_order(manager):
    first = manager.add_cmr_order({"doNo": "DO-1", "orderNo": "CMR-1"})
    manager.add_cmr_order({"doNo": "DO-1", "orderNo": "CMR-2"})

    edited = manager.update_cmr_order(first.id, {"deposited_at": " CWC Sehore "})
    assert edited.deposited_at == "CWC Sehore"
    with pytest.raises(ValidationError, match="already exists"):
        manager.update_cmr_order(first.id, {"order_no": "CMR-2"})

    manager.delete_cmr_order(first.id)
    assert [o.order_no for o in manager.list_cmr_orders()] == ["CMR-2"]
    with pytest.raises(ValidationError, match="not found"):
        manager.delete_cmr_order(first.id)


# ---------- deliveries ----------
def test_delivery_consumes_plain_rice_and_frk(milled, season_store):
    _buy_frk(season_store, 10.0)
    record = milled.add_delivery(_delivery(1000))
    assert record.quantity_delivered_qtls == pytest.approx(500.0)
    assert record.id.startswith("delivery-")

    summary = milled.delivery_summary()
    assert summary["total_delivered"] == pytest.approx(500.0)
    assert summary["frk_stock"] == pytest.approx(5.0)
    assert summary["plain_rice_stock"] == pytest.approx(175.0)
    assert summary["plain_rice_stock_bags"] == 350
    assert summary["share_percent"]["FCI"] == pytest.approx(100.0)
    assert milled.rice_entitlement_remaining("DO-1") == pytest.approx(170.0)


def test_delivery_needs_plain_rice(milled, season_store):
    _buy_frk(season_store, 10.0)
    milled.add_delivery(_delivery(1000))
    with pytest.raises(StockError, match="Not enough plain rice stock. Required: 198.000 Qtls"):
        milled.add_delivery(_delivery(400))


def test_delivery_needs_frk(milled, season_store):
    _buy_frk(season_store, 1.0)
    with pytest.raises(StockError, match="Not enough FRK stock. Required: 5.0000 Qtls, Available: 1.0000 Qtls."):
        milled.add_delivery(_delivery(1000))
    assert milled.list_deliveries() == []


def test_delivery_limited_by_entitlement(milled, season_store):
    _buy_frk(season_store, 10.0)
    milled.add_delivery(_delivery(1000))
    with pytest.raises(StockError, match="Only 170.000 Qtls remaining for DO DO-1"):
        milled.add_delivery(_delivery(350, day=6))


@pytest.mark.parametrize("changes, message", [
    ({"vehicle_no": ""}, "Please fill in all fields"),
    ({"bags_delivered": 0}, "Please fill in all fields"),
    ({"agency": "NAFED"}, "Agency must be one of"),
    ({"do_no": "DO-9"}, "Selected DO Number is not valid."),
])
def test_delivery_form_validation(milled, season_store, changes, message):
    _buy_frk(season_store, 10.0)
    with pytest.raises(DeliveryValidationError, match=message):
        milled.add_delivery(dict(_delivery(10), **changes))


def test_deliveries_newest_first_and_delete(milled, season_store):
    _buy_frk(season_store, 10.0)
    older = milled.add_delivery(_delivery(10, day=5))
    milled.add_delivery(_delivery(10, agency="MPSCSC", day=9))
    assert [d.date for d in milled.list_deliveries()] == ["2024-12-09", "2024-12-05"]

    milled.delete_delivery(older.id)
    assert [d.agency for d in milled.list_deliveries()] == ["MPSCSC"]
    with pytest.raises(DeliveryValidationError, match="not found"):
        milled.delete_delivery(older.id)
