# storage.py
"""
Key-value persistence for Miller Mitra ledgers.

Every collection is stored as one JSON array string under
``{username}_{kind}_{season}``; user profiles live under the global
``userProfiles`` key. Collections are always read and written whole
(last writer wins).
"""

from __future__ import annotations

import json
import re
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, select

from db import SessionLocal, session_scope
from legacy_adapters import adapt
from logger import log_debug, log_error, log_info, log_warning
from models import StorageEntry
from records import PROFILES_KEY, RECORD_TYPES, RecordKind, UserProfile

SEASON_PATTERN = re.compile(r"^20\d{2}-20\d{2}$")


def storage_key(username: str, kind: RecordKind, season: str) -> str:
    return f"{username}_{kind.value}_{season}"


def legacy_storage_key(kind: RecordKind, season: str) -> str:
    """Keys written before collections were scoped by user."""
    return f"{kind.value}_{season}"


class KeyValueStore:
    """String-to-string storage backed by the ``storage_entries`` table."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as s:
            entry = s.execute(
                select(StorageEntry).where(StorageEntry.storage_key == key)
            ).scalar_one_or_none()
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, values: Dict[str, str]) -> None:
        """Write several keys in one transaction; none are written if any fails."""
        with session_scope(self._session_factory) as s:
            self._write(s, values)

    @staticmethod
    def _write(s, values: Dict[str, str]) -> None:
        for key, value in values.items():
            entry = s.execute(
                select(StorageEntry).where(StorageEntry.storage_key == key)
            ).scalar_one_or_none()
            if entry is None:
                s.add(StorageEntry(storage_key=key, value=value))
            else:
                entry.value = value

    def replace_all(self, values: Dict[str, str]) -> int:
        """Swap the whole store for ``values`` in one transaction. Returns the number of keys removed."""
        with session_scope(self._session_factory) as s:
            removed = s.execute(delete(StorageEntry)).rowcount
            s.flush()
            self._write(s, values)
            return removed

    def move_many(self, renames: Dict[str, str]) -> int:
        """Rename keys (old -> new) in one transaction, overwriting any existing new key."""
        if not renames:
            return 0
        with session_scope(self._session_factory) as s:
            entries = s.execute(
                select(StorageEntry).where(StorageEntry.storage_key.in_(list(renames)))
            ).scalars().all()
            moved = {entry.storage_key: entry.value for entry in entries}
            for entry in entries:
                s.delete(entry)
            s.flush()
            self._write(s, {renames[old]: value for old, value in moved.items()})
            return len(moved)

    def delete(self, key: str) -> bool:
        return self.delete_many([key]) > 0

    def delete_many(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        if not keys:
            return 0
        with session_scope(self._session_factory) as s:
            entries = s.execute(
                select(StorageEntry).where(StorageEntry.storage_key.in_(keys))
            ).scalars().all()
            for entry in entries:
                s.delete(entry)
            return len(entries)

    def keys(self) -> List[str]:
        with self._session_factory() as s:
            return list(s.execute(
                select(StorageEntry.storage_key).order_by(StorageEntry.storage_key)
            ).scalars())

    def items(self) -> Dict[str, str]:
        with self._session_factory() as s:
            rows = s.execute(select(StorageEntry.storage_key, StorageEntry.value)).all()
            return {key: value for key, value in rows}


def _parse_array(raw: str, key: str) -> List[dict]:
    """Parse a stored collection; anything unreadable counts as empty."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        log_error(f"Corrupted data in storage slot '{key}'; treating it as empty", exc_info=True)
        return []
    if not isinstance(data, list):
        log_error(f"Storage slot '{key}' does not hold a list; treating it as empty")
        return []
    items = [item for item in data if isinstance(item, dict)]
    if len(items) != len(data):
        log_warning(f"Skipped {len(data) - len(items)} malformed item(s) in '{key}'")
    return items


class SeasonStore:
    """The six ledger collections of one user for one season."""

    def __init__(self, store: KeyValueStore, username: str, season: str):
        self.store = store
        self.username = username
        self.season = season

    def for_season(self, season: str) -> "SeasonStore":
        return SeasonStore(self.store, self.username, season)

    def key_for(self, kind: RecordKind) -> str:
        return storage_key(self.username, kind, self.season)

    def load_raw(self, kind: RecordKind) -> List[dict]:
        key = self.key_for(kind)
        raw = self.store.get(key)
        if raw is None and self.store.get(legacy_storage_key(kind, self.season)) is not None:
            self.claim_legacy()
            raw = self.store.get(key)
        if raw is None:
            return []
        return [adapt(kind, item) for item in _parse_array(raw, key)]

    def claim_legacy(self) -> int:
        """
        Move this season's unscoped slots under this user's keys.
        The first profile to open the season takes them; slots the user
        already has are left alone.
        """
        existing = set(self.store.keys())
        renames = {
            legacy_storage_key(kind, self.season): self.key_for(kind)
            for kind in RecordKind
            if legacy_storage_key(kind, self.season) in existing and self.key_for(kind) not in existing
        }
        moved = self.store.move_many(renames)
        if moved:
            log_info(f"Moved {moved} legacy slot(s) of {self.season} to {self.username}")
        return moved

    def load(self, kind: RecordKind) -> list:
        record_type = RECORD_TYPES[kind]
        return [record_type.from_dict(item) for item in self.load_raw(kind)]

    def save(self, kind: RecordKind, records: Iterable) -> None:
        payload = [r if isinstance(r, dict) else r.to_dict() for r in records]
        self.store.set(self.key_for(kind), json.dumps(payload))
        log_debug(f"Saved {len(payload)} record(s) to '{self.key_for(kind)}'")


def load_profiles(store: KeyValueStore) -> List[UserProfile]:
    raw = store.get(PROFILES_KEY)
    if raw is None:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        data = None
    if not isinstance(data, list):
        log_error("Profile data is corrupted; clearing stored profiles")
        store.delete(PROFILES_KEY)
        return []
    return [UserProfile.from_dict(item) for item in data if isinstance(item, dict)]


def save_profiles(store: KeyValueStore, profiles: Iterable[UserProfile]) -> None:
    store.set(PROFILES_KEY, json.dumps([p.to_dict() for p in profiles]))


def available_seasons(store: KeyValueStore, username: str, defaults: Iterable[str]) -> List[str]:
    """Default seasons plus every season that has release orders saved."""
    seasons = set(defaults)
    user_prefix = f"{username}_{RecordKind.RELEASE_ORDERS.value}_"
    legacy_prefix = f"{RecordKind.RELEASE_ORDERS.value}_"
    for key in store.keys():
        for prefix in (user_prefix, legacy_prefix):
            if key.startswith(prefix):
                season = key[len(prefix):]
                if SEASON_PATTERN.match(season):
                    seasons.add(season)
    return sorted(seasons, reverse=True)
