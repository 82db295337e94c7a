# health_check.py
"""
Health check for a Miller Mitra installation.
Run: python health_check.py

Checks the database, that every stored ledger slot is readable, installed
packages, working directories, configuration and the age of the newest
backup. Exits 1 when any check fails.
"""

import importlib.util
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Tuple

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from timezone_utils import get_local_time

CheckResult = Tuple[bool, str]

# import name -> distribution name
REQUIRED_PACKAGES = {
    "streamlit": "streamlit",
    "sqlalchemy": "sqlalchemy",
    "dotenv": "python-dotenv",
    "bcrypt": "bcrypt",
    "pandas": "pandas",
    "reportlab": "reportlab",
    "plotly": "plotly",
    "pytz": "pytz",
    "requests": "requests",
}

BACKUP_WARN_DAYS = 7


def check_database() -> CheckResult:
    from db import DB_URL, engine
    from models import StorageEntry

    table = StorageEntry.__tablename__
    try:
        if not inspect(engine).has_table(table):
            return False, f"Table '{table}' missing in {DB_URL}; start the app once to create it"
    except SQLAlchemyError as e:
        return False, f"Cannot connect to {DB_URL}: {e}"
    return True, f"Connected to {DB_URL}"


def check_storage(store=None) -> CheckResult:
    """Every ledger slot and the profile list must hold a JSON array."""
    from backup_manager import is_backup_key
    from storage import KeyValueStore

    store = store or KeyValueStore()
    unreadable = []
    slots = 0
    for key, raw in store.items().items():
        if not is_backup_key(key):
            continue
        slots += 1
        try:
            ok = isinstance(json.loads(raw), list)
        except ValueError:
            ok = False
        if not ok:
            unreadable.append(key)
    if unreadable:
        return False, f"{len(unreadable)} unreadable slot(s): {', '.join(sorted(unreadable))}"
    return True, f"{slots} stored slot(s), all readable"


def check_dependencies() -> CheckResult:
    missing = [dist for name, dist in REQUIRED_PACKAGES.items() if importlib.util.find_spec(name) is None]
    if missing:
        return False, f"Missing packages: {', '.join(missing)} (pip install {' '.join(missing)})"
    return True, f"All {len(REQUIRED_PACKAGES)} required packages installed"


def check_directories() -> CheckResult:
    from ledger_config import backup_dir
    from logger import LOGS_DIR

    created = []
    for directory in (Path(backup_dir()), LOGS_DIR):
        if directory.exists():
            continue
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return False, f"Cannot create {directory}: {e}"
        created.append(str(directory))
    if created:
        return True, f"Created {', '.join(created)}"
    return True, "Backup and log directories present"


def check_config() -> CheckResult:
    from ledger_config import gemini_settings, load_ledger_config

    try:
        config = load_ledger_config()
    except ValueError as e:
        return False, str(e)
    if not 0 < config.cmr_turnout_ratio <= 1 or not 0 <= config.frk_blend_ratio < 1:
        return False, "CMR turnout must be in (0, 1] and FRK blend ratio in [0, 1)"
    if not gemini_settings()["api_key"]:
        return False, "GEMINI_API_KEY is not set; document upload is unavailable"
    return True, (
        f"Turnout {config.cmr_turnout_ratio}, FRK {config.frk_blend_ratio}, "
        f"bags {config.new_bag_weight_g:g} g / {config.used_bag_weight_g:g} g"
    )


def check_backups(directory=None) -> CheckResult:
    from backup_manager import BackupManager

    latest = BackupManager.list_backups(directory, limit=1)
    if not latest:
        return False, "No backup file found; save one from Settings"
    age = datetime.now() - datetime.fromisoformat(latest[0]["datetime"])
    if age.days > BACKUP_WARN_DAYS:
        return False, f"Newest backup {latest[0]['filename']} is {age.days} days old"
    return True, f"Newest backup {latest[0]['filename']}"


CHECKS: List[Tuple[str, Callable[[], CheckResult]]] = [
    ("Database", check_database),
    ("Stored data", check_storage),
    ("Dependencies", check_dependencies),
    ("Directories", check_directories),
    ("Configuration", check_config),
    ("Backups", check_backups),
]


def run_checks(checks=None) -> List[Tuple[str, bool, str]]:
    results = []
    for name, check in checks or CHECKS:
        try:
            passed, message = check()
        except Exception as e:
            passed, message = False, f"{type(e).__name__}: {e}"
        results.append((name, passed, message))
    return results


def main() -> int:
    print("=" * 60)
    print(f"🌾 MILLER MITRA HEALTH CHECK  {get_local_time().strftime('%d-%m-%Y %H:%M %Z')}")
    print("=" * 60)

    results = run_checks()
    for name, passed, message in results:
        print(f"{'✅' if passed else '❌'} {name:15s} {message}")

    failed = sum(1 for _, passed, _ in results if not passed)
    print("=" * 60)
    if failed:
        print(f"⚠️  {failed} of {len(results)} checks failed")
        return 1
    print("🎉 All checks passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
