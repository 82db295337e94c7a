# backup_manager.py
"""
Backup and restore for Miller Mitra.
A backup is one JSON object mapping every ledger storage key (all
profiles, all seasons) plus ``userProfiles`` to its raw stored string.
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from errors import BackupFormatError
from ledger_config import backup_dir
from logger import log_error, log_info, log_warning
from records import PROFILES_KEY
from storage import KeyValueStore
from timezone_utils import get_local_time

BACKUP_KEY_PATTERN = re.compile(r"^([a-zA-Z0-9]+)_([a-zA-Z]+)_(20\d{2}-20\d{2})$")
BACKUP_FILE_PREFIX = "miller-mitra-backup-all-profiles-"
INVALID_BACKUP_MESSAGE = "This does not appear to be a valid Miller Mitra backup file."

RESTORE_MERGE = "merge"
RESTORE_REPLACE = "replace"


def is_backup_key(key: str) -> bool:
    return key == PROFILES_KEY or bool(BACKUP_KEY_PATTERN.match(key))


class BackupManager:
    """Exports, previews and restores the whole key-value store"""

    BACKUP_DIR = Path(backup_dir())

    @staticmethod
    def export_all(store: KeyValueStore) -> Dict[str, str]:
        """Every profile and ledger slot, values exactly as stored."""
        return {key: value for key, value in store.items().items() if is_backup_key(key)}

    @staticmethod
    def export_json(store: KeyValueStore) -> str:
        data = BackupManager.export_all(store)
        if not data:
            raise BackupFormatError("No application data found to back up.")
        return json.dumps(data, indent=2, ensure_ascii=False)

    @staticmethod
    def backup_filename(day: Optional[datetime] = None) -> str:
        day = day or get_local_time()
        return f"{BACKUP_FILE_PREFIX}{day.strftime('%Y-%m-%d')}.json"

    @staticmethod
    def write_backup_file(store: KeyValueStore, directory: Optional[Path] = None) -> Dict:
        """
        Write a backup file to disk.
        Returns backup info dict.
        """
        directory = Path(directory or BackupManager.BACKUP_DIR)
        directory.mkdir(parents=True, exist_ok=True)

        content = BackupManager.export_json(store)
        path = directory / BackupManager.backup_filename()
        path.write_text(content, encoding="utf-8")

        size_bytes = path.stat().st_size
        info = {
            "filename": path.name,
            "path": str(path),
            "datetime": get_local_time().isoformat(),
            "keys": len(json.loads(content)),
            "size_bytes": size_bytes,
            "size_kb": round(size_bytes / 1024, 1),
        }
        log_info(f"Backup written: {path.name} ({info['keys']} keys)")
        return info

    @staticmethod
    def list_backups(directory: Optional[Path] = None, limit: Optional[int] = None) -> List[Dict]:
        """List backup files on disk, newest first"""
        directory = Path(directory or BackupManager.BACKUP_DIR)
        backups = []
        if not directory.exists():
            return backups

        for backup_file in sorted(directory.glob(f"{BACKUP_FILE_PREFIX}*.json"), reverse=True):
            stat = backup_file.stat()
            backups.append({
                "filename": backup_file.name,
                "path": str(backup_file),
                "datetime": datetime.fromtimestamp(stat.st_mtime).isoformat(),
                "size_bytes": stat.st_size,
                "size_kb": round(stat.st_size / 1024, 1),
            })

        if limit:
            return backups[:limit]
        return backups

    @staticmethod
    def load_backup(content: Union[str, bytes]) -> Dict:
        """Parse backup file content; raises BackupFormatError if it is not a backup."""
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8")
            except UnicodeDecodeError as e:
                raise BackupFormatError("File could not be read.") from e
        try:
            data = json.loads(content)
        except ValueError as e:
            raise BackupFormatError(
                "Failed to parse the backup file. Please ensure it is a valid JSON file."
            ) from e
        if not isinstance(data, dict) or not any(is_backup_key(k) for k in data):
            raise BackupFormatError(INVALID_BACKUP_MESSAGE)
        return data

    @staticmethod
    def preview_backup(data: Dict) -> Dict:
        """
        Which profiles and seasons a backup would restore.
        Returns {"profiles": [...], "seasons_by_profile": {username: [seasons]}}.
        """
        if not isinstance(data, dict) or not any(is_backup_key(k) for k in data):
            raise BackupFormatError(INVALID_BACKUP_MESSAGE)

        profiles: List[str] = []
        raw_profiles = data.get(PROFILES_KEY)
        if raw_profiles:
            try:
                parsed = json.loads(raw_profiles)
                profiles = [p["username"] for p in parsed if isinstance(p, dict) and p.get("username")]
            except (TypeError, ValueError):
                log_warning("Profile list in backup is unreadable; listing profiles from ledger keys only")

        seasons_by_profile: Dict[str, List[str]] = {}
        for key in data:
            match = BACKUP_KEY_PATTERN.match(key)
            if not match:
                continue
            username, _kind, season = match.groups()
            if username not in profiles:
                profiles.append(username)
            seasons = seasons_by_profile.setdefault(username, [])
            if season not in seasons:
                seasons.append(season)

        return {"profiles": profiles, "seasons_by_profile": seasons_by_profile}

    @staticmethod
    def restore_backup(store: KeyValueStore, data: Dict, strategy: str = RESTORE_MERGE) -> Dict:
        """
        Restore a parsed backup.
        ``merge`` writes every key and keeps other stored keys; ``replace``
        swaps the whole store in one transaction. Values are written exactly as in the file.
        """
        if strategy not in (RESTORE_MERGE, RESTORE_REPLACE):
            raise BackupFormatError(f"Unknown restore strategy: {strategy}")
        BackupManager.preview_backup(data)

        values = {
            key: value if isinstance(value, str) else json.dumps(value)
            for key, value in data.items()
        }
        cleared = 0
        try:
            if strategy == RESTORE_REPLACE:
                cleared = store.replace_all(values)
            else:
                store.set_many(values)
        except Exception:
            log_error(f"Restore ({strategy}) failed", exc_info=True)
            raise

        log_info(f"Backup restored ({strategy}): {len(values)} keys written, {cleared} cleared")
        return {
            "strategy": strategy,
            "keys_written": len(values),
            "keys_cleared": cleared,
            "restored_at": get_local_time().isoformat(),
        }
