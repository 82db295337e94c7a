import json
import logging

import pytest

from records import PROFILES_KEY, LiftingRecord, RecordKind, ReleaseOrder, UserProfile
from storage import (
    KeyValueStore, SeasonStore, available_seasons, legacy_storage_key, load_profiles, save_profiles, storage_key,
)

from conftest import SEASON, USER


def test_storage_keys():
    assert storage_key("ramesh", RecordKind.LIFTING_RECORDS, "2024-2025") == "ramesh_liftingRecords_2024-2025"
    assert legacy_storage_key(RecordKind.RELEASE_ORDERS, "2023-2024") == "releaseOrders_2023-2024"


def test_key_value_store_basics(store):
    assert store.get("missing") is None
    store.set("a", "1")
    store.set("a", "2")
    store.set_many({"b": "3", "c": "4"})
    assert store.get("a") == "2"
    assert store.keys() == ["a", "b", "c"]
    assert store.delete("b") is True
    assert store.delete("b") is False
    assert store.items() == {"a": "2", "c": "4"}
    assert store.replace_all({}) == 2
    assert store.keys() == []


def test_save_and_load_records_with_camel_case_keys(season_store):
    order = ReleaseOrder(do_no="DO-1", godown="A", quantity="100.5", uparjan_varsh=SEASON)
    season_store.save(RecordKind.RELEASE_ORDERS, [order])

    raw = json.loads(season_store.store.get(f"{USER}_releaseOrders_{SEASON}"))
    assert raw[0]["doNo"] == "DO-1"
    assert raw[0]["uparjanVarsh"] == SEASON
    assert season_store.load(RecordKind.RELEASE_ORDERS) == [order]


def test_unknown_fields_survive_a_round_trip(season_store):
    key = season_store.key_for(RecordKind.FRK_RECORDS)
    season_store.store.set(key, json.dumps([
        {"id": "frk-1", "date": "2024-11-01", "invoiceNo": "I", "supplier": "S", "quantityQtls": 1, "note": "x"},
    ]))
    records = season_store.load(RecordKind.FRK_RECORDS)
    season_store.save(RecordKind.FRK_RECORDS, records)
    assert json.loads(season_store.store.get(key))[0]["note"] == "x"


def test_corrupt_slot_reads_as_empty(season_store):
    key = season_store.key_for(RecordKind.LIFTING_RECORDS)
    season_store.store.set(key, "{not json")
    assert season_store.load(RecordKind.LIFTING_RECORDS) == []
    # the slot is left for inspection, not deleted
    assert season_store.store.get(key) == "{not json"


def test_non_list_slot_reads_as_empty(season_store):
    season_store.store.set(season_store.key_for(RecordKind.DAILY_STOCK_LOGS), json.dumps({"a": 1}))
    assert season_store.load(RecordKind.DAILY_STOCK_LOGS) == []


def test_legacy_key_is_read_and_adapted(store):
    store.set(legacy_storage_key(RecordKind.LIFTING_RECORDS, SEASON), json.dumps([
        {"id": "lift-1", "rstNo": "1", "doNo": "DO-1", "godown": "A", "grossLiftedQuantity": 10.58,
         "totalBagWeight": 0.58, "netPaddyQuantity": 10.0, "truckNo": "T", "bagType": "New Bag",
         "numberOfBags": 100, "liftingDate": "2024-11-01"},
    ]))
    season_store = SeasonStore(store, USER, SEASON)
    (record,) = season_store.load(RecordKind.LIFTING_RECORDS)
    assert isinstance(record, LiftingRecord)
    assert record.number_of_new_bags == 100
    assert record.number_of_used_bags == 0

    # the slot now belongs to this user
    assert store.get(legacy_storage_key(RecordKind.LIFTING_RECORDS, SEASON)) is None
    assert store.get(season_store.key_for(RecordKind.LIFTING_RECORDS)) is not None


def test_user_key_wins_over_legacy_key(store):
    store.set(legacy_storage_key(RecordKind.FRK_RECORDS, SEASON), json.dumps([{"id": "old"}]))
    season_store = SeasonStore(store, USER, SEASON)
    season_store.save(RecordKind.FRK_RECORDS, [])
    assert season_store.load(RecordKind.FRK_RECORDS) == []
    assert store.get(legacy_storage_key(RecordKind.FRK_RECORDS, SEASON)) is not None


def test_seasons_are_isolated(season_store):
    other = season_store.for_season("2023-2024")
    season_store.save(RecordKind.RELEASE_ORDERS, [ReleaseOrder(do_no="DO-1")])
    assert other.load(RecordKind.RELEASE_ORDERS) == []


def test_available_seasons(store):
    store.set(f"{USER}_releaseOrders_2022-2023", "[]")
    store.set("releaseOrders_2021-2022", "[]")
    store.set("someoneelse_releaseOrders_2020-2021", "[]")
    store.set(f"{USER}_releaseOrders_notaseason", "[]")
    seasons = available_seasons(store, USER, ["2024-2025", "2023-2024"])
    assert seasons == ["2024-2025", "2023-2024", "2022-2023", "2021-2022"]


def test_profiles_round_trip(store):
    save_profiles(store, [UserProfile(username="ramesh", password="hash")])
    assert load_profiles(store) == [UserProfile(username="ramesh", password="hash")]


def test_corrupt_profiles_are_cleared(store):
    store.set(PROFILES_KEY, "oops")
    assert load_profiles(store) == []
    assert store.get(PROFILES_KEY) is None


def test_legacy_slots_go_to_the_first_profile_only(store):
    store.set_many({
        legacy_storage_key(RecordKind.RELEASE_ORDERS, SEASON): json.dumps([{"doNo": "DO-A", "quantity": "100"}]),
        legacy_storage_key(RecordKind.FRK_RECORDS, SEASON): json.dumps([{"id": "frk-1"}]),
    })
    first = SeasonStore(store, USER, SEASON)
    assert [o.do_no for o in first.load(RecordKind.RELEASE_ORDERS)] == ["DO-A"]
    # every legacy kind of the season moves together
    assert store.get(first.key_for(RecordKind.FRK_RECORDS)) is not None

    second = SeasonStore(store, "suresh", SEASON)
    assert second.load(RecordKind.RELEASE_ORDERS) == []
    assert second.load(RecordKind.FRK_RECORDS) == []
    assert [o.do_no for o in first.load(RecordKind.RELEASE_ORDERS)] == ["DO-A"]


def test_replace_all_swaps_the_store(store):
    store.set_many({"a": "1", "b": "2"})
    assert store.replace_all({"b": "20", "c": "30"}) == 2
    assert store.items() == {"b": "20", "c": "30"}


def test_failed_replace_all_keeps_previous_data(store, monkeypatch):
    store.set_many({"a": "1", "b": "2"})

    def broken_write(session, values):
        raise RuntimeError("disk full")

    monkeypatch.setattr(KeyValueStore, "_write", staticmethod(broken_write))
    with pytest.raises(RuntimeError):
        store.replace_all({"c": "3"})
    monkeypatch.undo()
    assert store.items() == {"a": "1", "b": "2"}


def test_move_many_renames_keys(store):
    store.set_many({"old": "1", "new2": "stale", "other": "x"})
    assert store.move_many({"old": "new", "missing": "nowhere"}) == 1
    assert store.items() == {"new": "1", "new2": "stale", "other": "x"}
    assert store.move_many({}) == 0


def test_save_is_logged_at_debug(season_store, caplog):
    caplog.set_level(logging.DEBUG, logger="MillerMitra")
    season_store.save(RecordKind.RELEASE_ORDERS, [ReleaseOrder(do_no="DO-1")])
    assert f"Saved 1 record(s) to '{season_store.key_for(RecordKind.RELEASE_ORDERS)}'" in caplog.text
