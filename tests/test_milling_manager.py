import pytest

from errors import ChainValidationError, LogValidationError
from milling_manager import MillingManager
from records import LiftingRecord, RecordKind


def _entry(day, opened_new=0, rice_bags=0, **by_products):
    entry = {"date": f"2024-11-{day:02d}", "paddy_bags_opened_new": opened_new, "rice_bags_new": rice_bags}
    entry.update(by_products)
    return entry


@pytest.fixture
def manager(season_store, config):
    # 100 Qtls over 250 bags -> 0.4 Qtls per bag
    season_store.save(RecordKind.LIFTING_RECORDS, [
        LiftingRecord("lift-1", "101", "DO-1", "G", 101.45, 1.45, 100.0, "MP09AB1234", number_of_new_bags=250),
    ])
    return MillingManager(season_store, config)


def test_add_log_derives_rice_and_wip(manager):
    log = manager.add_log(_entry(1, opened_new=100, rice_bags=50, bran_sold=5.0))
    assert log.rice_quantity == pytest.approx(25.0)

    (stored,) = manager.list_logs()
    assert stored.paddy_consumed_qtls == pytest.approx(40.0)
    assert stored.work_in_progress_qtls == pytest.approx(10.0)


def test_rice_quantity_ignores_submitted_value(manager):
    log = manager.add_log(dict(_entry(1, opened_new=100, rice_bags=10), rice_quantity=999))
    assert log.rice_quantity == pytest.approx(5.0)


def test_rejected_log_leaves_storage_unchanged(manager):
    manager.add_log(_entry(1, opened_new=100, rice_bags=50, bran_sold=5.0))
    before = manager.season_store.load_raw(RecordKind.DAILY_STOCK_LOGS)

    with pytest.raises(ChainValidationError) as excinfo:
        manager.add_log(_entry(2, rice_bags=30))
    assert excinfo.value.date == "2024-11-02"
    assert excinfo.value.available == pytest.approx(10.0)
    assert manager.season_store.load_raw(RecordKind.DAILY_STOCK_LOGS) == before


def test_edit_keeps_unknown_stored_keys(manager):
    log = manager.add_log(_entry(1, opened_new=100, rice_bags=50))
    raw = manager.season_store.load_raw(RecordKind.DAILY_STOCK_LOGS)
    raw[0]["operatorNote"] = "shift B"
    manager.season_store.save(RecordKind.DAILY_STOCK_LOGS, raw)

    manager.update_log(log.id, _entry(1, opened_new=100, rice_bags=40))

    (stored,) = manager.season_store.load_raw(RecordKind.DAILY_STOCK_LOGS)
    assert stored["operatorNote"] == "shift B"
    assert stored["riceBagsNew"] == 40


def test_editing_an_early_day_revalidates_later_days(manager):
    first = manager.add_log(_entry(1, opened_new=100, rice_bags=50, bran_sold=5.0))
    manager.add_log(_entry(2, rice_bags=20))

    # more rice on day 1 leaves no WIP for day 2
    with pytest.raises(ChainValidationError):
        manager.update_log(first.id, _entry(1, opened_new=100, rice_bags=70, bran_sold=5.0))

    manager.update_log(first.id, _entry(1, opened_new=100, rice_bags=40, bran_sold=5.0))
    view = manager.ledger_view()
    assert [row.date for row in view.rows] == ["2024-11-02", "2024-11-01"]
    assert view.rows[1].work_in_progress_qtls == pytest.approx(15.0)
    assert view.current_wip == pytest.approx(5.0)


def test_delete_log_recomputes_chain(manager):
    first = manager.add_log(_entry(1, opened_new=100, rice_bags=50))
    manager.add_log(_entry(2, opened_new=50, rice_bags=10))
    manager.delete_log(first.id)
    (remaining,) = manager.list_logs()
    assert remaining.work_in_progress_qtls == pytest.approx(15.0)
    with pytest.raises(LogValidationError, match="not found"):
        manager.delete_log(first.id)


def test_log_entry_validation(manager):
    with pytest.raises(LogValidationError, match="select a Date"):
        manager.add_log(dict(_entry(1, opened_new=1), date=""))
    with pytest.raises(LogValidationError, match="negative"):
        manager.add_log(_entry(1, opened_new=10, husk_sold=-1))
    with pytest.raises(LogValidationError, match="not found"):
        manager.update_log("daily-missing", _entry(1))


def test_stock_summary(manager):
    manager.add_log(_entry(1, opened_new=100, rice_bags=50, bran_sold=5.0))
    summary = manager.stock_summary(rice_quantity=25.0)
    assert summary["average_bag_weight"] == pytest.approx(0.4)
    assert summary["bags"]["stock_new"] == 150
    assert summary["paddy_stock"]["stock"] == pytest.approx(60.0)
    assert summary["paddy_on_hand"] == pytest.approx(70.0)
    assert summary["required_frk"] == pytest.approx(0.25)


def test_entry_from_log_round_trips_form_values(manager):
    log = manager.add_log(_entry(1, opened_new=100, rice_bags=50, bran_sold=5.0))
    entry = MillingManager.entry_from_log(log)
    assert entry["date"] == "2024-11-01"
    assert entry["rice_bags_new"] == 50
    assert entry["bran_sold"] == 5.0
