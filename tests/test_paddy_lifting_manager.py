import pytest

from errors import ExtractionError, LiftValidationError, SeasonMismatchError, ValidationError
from lift_allocator import LiftRequest
from paddy_lifting_manager import PaddyLiftingManager, normalize_season
from records import RecordKind, ReleaseOrder

from conftest import SEASON, FakeExtractor

PDF = b"%PDF-1.4"


def _order(do_no="DO-1", quantity="100", godown="G", season="2024-25"):
    return ReleaseOrder(do_no=do_no, godown=godown, quantity=quantity, uparjan_varsh=season)


@pytest.fixture
def manager(season_store, config):
    return PaddyLiftingManager(season_store, config)


@pytest.fixture
def stocked(manager):
    manager.save_release_order(_order("DO-1", "100"))
    manager.save_release_order(_order("DO-2", "50"))
    return manager


def test_normalize_season():
    assert normalize_season("2023-24") == "2023-2024"
    assert normalize_season(" 2024-2025 ") == "2024-2025"
    assert normalize_season("") == ""


def test_import_release_order_into_current_season(manager):
    result = manager.import_release_order(PDF, "application/pdf", FakeExtractor(release_order=_order()))
    assert result["created"] is True
    assert result["season"] == SEASON
    (saved,) = manager.list_release_orders()
    assert saved.uparjan_varsh == SEASON

    again = manager.import_release_order(PDF, "application/pdf", FakeExtractor(release_order=_order(quantity="120")))
    assert again["created"] is False
    assert manager.list_release_orders()[0].allotted_qtls == pytest.approx(120.0)


def test_import_rejects_other_documents(manager):
    with pytest.raises(ValidationError, match="Dhan Delivery Order"):
        manager.import_release_order(PDF, "application/pdf", FakeExtractor(is_ro=False))
    with pytest.raises(ExtractionError, match="valid PDF"):
        manager.import_release_order(PDF, "image/png", FakeExtractor(release_order=_order()))
    assert manager.list_release_orders() == []


def test_import_for_another_season(manager):
    extractor = FakeExtractor(release_order=_order(season="2023-24"))
    with pytest.raises(SeasonMismatchError) as excinfo:
        manager.import_release_order(PDF, "application/pdf", extractor)
    assert excinfo.value.target_season == "2023-2024"
    assert manager.list_release_orders() == []

    result = manager.import_release_order(PDF, "application/pdf", extractor, allow_season_switch=True)
    assert result["season"] == "2023-2024"
    assert manager.list_release_orders() == []
    other = manager.season_store.for_season("2023-2024")
    assert [o.do_no for o in other.load(RecordKind.RELEASE_ORDERS)] == ["DO-1"]


def test_update_release_order(stocked):
    edited = stocked.update_release_order("DO-1", {"quantity": " 110 ", "godown": "G"})
    assert edited.quantity == "110"
    with pytest.raises(ValidationError, match="cannot be changed"):
        stocked.update_release_order("DO-1", {"do_no": "DO-9"})
    with pytest.raises(ValidationError, match="valid number"):
        stocked.update_release_order("DO-1", {"quantity": "abc"})
    with pytest.raises(ValidationError, match="not found"):
        stocked.update_release_order("DO-9", {"quantity": "1"})


def test_record_lift_and_delete_order_cascade(stocked):
    request = LiftRequest("G", 121.0, 200, 0, "101", "MP09AB1234")
    records = stocked.record_lift(request, second_do_no="DO-2")
    assert [r.do_no for r in records] == ["DO-1", "DO-2"]
    assert stocked.list_release_orders()[0].quantity == "100"

    summary = {g["godown"]: g for g in stocked.godown_summary()}
    assert summary["G"]["pending"] == pytest.approx(150.0 - 119.84)

    removed = stocked.delete_release_order("DO-1")
    assert removed == 1
    assert [r.do_no for r in stocked.list_lifting_records()] == ["DO-2"]


def test_rejected_lift_saves_nothing(stocked):
    with pytest.raises(ValidationError):
        stocked.record_lift(LiftRequest("G", "", 10, 0, "101", "MP09AB1234"))
    assert stocked.list_lifting_records() == []


def test_preview_tolerates_blank_form(stocked):
    preview = stocked.preview_lift(LiftRequest("G", "", "", "", "", ""))
    assert preview["net"] == 0.0
    assert preview["tare"] == 0.0
    assert preview["godown_pending"] == pytest.approx(150.0)


def test_edit_lifting_record(stocked):
    (record,) = stocked.record_lift(LiftRequest("G", 40.58, 100, 0, "101", "MP09AB1234"))
    options = [o.do_no for o in stocked.lifting_edit_options(record.id)]
    assert options == ["DO-1", "DO-2"]

    moved = stocked.update_lifting_record(record.id, " 102 ", "MP09AB0001", "DO-2")
    assert (moved.rst_no, moved.do_no) == ("102", "DO-2")
    with pytest.raises(LiftValidationError, match="cannot be empty"):
        stocked.update_lifting_record(record.id, "", "MP09AB0001", "DO-2")

    stocked.delete_lifting_record(record.id)
    assert stocked.list_lifting_records() == []
    with pytest.raises(ValidationError, match="not found"):
        stocked.delete_lifting_record(record.id)


def test_edit_options_exclude_orders_too_small(stocked):
    (record,) = stocked.record_lift(LiftRequest("G", 80.58, 100, 0, "101", "MP09AB1234"))
    assert [o.do_no for o in stocked.lifting_edit_options(record.id)] == ["DO-1"]
    with pytest.raises(LiftValidationError, match="enough pending"):
        stocked.update_lifting_record(record.id, "101", "MP09AB1234", "DO-2")


def test_weighing_slip_to_form():
    form = PaddyLiftingManager.weighing_slip_to_form(
        {"rstNo": " 12800 ", "truckNo": "MP19HA4165", "liftedQuantityInKg": "22,555", "numberOfBags": "380 बोरी"}
    )
    assert form == {"rst_no": "12800", "truck_no": "MP19HA4165", "gross_quantity": "225.550", "new_bags": "380"}

    blank = PaddyLiftingManager.weighing_slip_to_form({"liftedQuantityInKg": "n/a", "numberOfBags": ""})
    assert blank["gross_quantity"] == ""
    assert blank["new_bags"] == ""


def test_scan_weighing_slip_checks_file_type(manager):
    slip = {"rstNo": "1", "truckNo": "T", "liftedQuantityInKg": "1000", "numberOfBags": ""}
    form = manager.scan_weighing_slip(b"img", "image/jpeg", FakeExtractor(slip=slip))
    assert form["gross_quantity"] == "10.000"
    with pytest.raises(ExtractionError):
        manager.scan_weighing_slip(b"txt", "text/plain", FakeExtractor(slip=slip))
