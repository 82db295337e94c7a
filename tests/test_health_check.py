from backup_manager import BackupManager
from health_check import check_backups, check_storage, run_checks


def test_check_storage_flags_unreadable_slots(store):
    store.set_many({
        "userProfiles": "[]",
        "ramesh_releaseOrders_2024-2025": "[]",
        "ramesh_dailyStockLogs_2024-2025": "{not json",
        "some_other_key": "ignored",
    })
    passed, message = check_storage(store)
    assert passed is False
    assert "ramesh_dailyStockLogs_2024-2025" in message

    store.set("ramesh_dailyStockLogs_2024-2025", "[]")
    assert check_storage(store) == (True, "3 stored slot(s), all readable")


def test_check_backups(store, tmp_path):
    passed, message = check_backups(tmp_path)
    assert passed is False and "No backup" in message

    store.set("userProfiles", "[]")
    BackupManager.write_backup_file(store, tmp_path)
    passed, message = check_backups(tmp_path)
    assert passed is True
    assert BackupManager.backup_filename() in message


def test_run_checks_reports_exceptions():
    def broken():
        raise RuntimeError("boom")

    results = run_checks([("Fine", lambda: (True, "ok")), ("Broken", broken)])
    assert results == [("Fine", True, "ok"), ("Broken", False, "RuntimeError: boom")]
