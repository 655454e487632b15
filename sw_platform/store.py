# sw_platform/store.py
# ShareWatch - entry persistence (protocol + JSON document store)
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from _logging import log as _root_log

from .config_base import _write_json_atomic
from .errors import PersistenceError
from .models import Entry, EntryMeta, Watch, utc_now_iso

log = _root_log.child("STORE")


class EntryStore(Protocol):
    def find_entries_by_list(self, list_id: str) -> list[Entry]: ...
    def get_entry(self, entry_id: str) -> Optional[Entry]: ...
    def create_entry(self, entry: Entry) -> Entry: ...
    def update_entry_watches(self, entry_id: str, watches: Sequence[Watch], meta: EntryMeta) -> None: ...
    def update_entry_rating(self, entry_id: str, user_id: str, rating: Optional[str]) -> None: ...
    def delete_entry(self, entry_id: str) -> None: ...


class JsonEntryStore:
    """All entries of all lists in one JSON document, rewritten atomically on every change."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()

    # io
    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"version": 1, "entries": {}}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read {self.path.name}: {e}") from e
        if not isinstance(data.get("entries"), dict):
            data["entries"] = {}
        return data

    def _save(self, data: dict[str, Any]) -> None:
        try:
            _write_json_atomic(self.path, data)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path.name}: {e}") from e

    def _require(self, data: dict[str, Any], entry_id: str) -> dict[str, Any]:
        raw = data["entries"].get(entry_id)
        if not isinstance(raw, dict):
            raise PersistenceError(f"Entry {entry_id} does not exist")
        return raw

    # reads
    def find_entries_by_list(self, list_id: str) -> list[Entry]:
        with self._lock:
            data = self._load()
        out = [Entry.from_dict(e) for e in data["entries"].values() if isinstance(e, dict) and e.get("list_id") == list_id]
        out.sort(key=lambda e: e.updated_at, reverse=True)
        return out

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        with self._lock:
            raw = self._load()["entries"].get(entry_id)
        return Entry.from_dict(raw) if isinstance(raw, dict) else None

    # writes
    def create_entry(self, entry: Entry) -> Entry:
        with self._lock:
            data = self._load()
            if entry.id in data["entries"]:
                raise PersistenceError(f"Entry {entry.id} already exists")
            now = utc_now_iso()
            entry.created_at = entry.created_at or now
            entry.updated_at = now
            data["entries"][entry.id] = entry.to_dict()
            self._save(data)
        log.debug(f"created entry {entry.id} '{entry.title}' in list {entry.list_id}")
        return entry

    def update_entry_watches(self, entry_id: str, watches: Sequence[Watch], meta: EntryMeta) -> None:
        with self._lock:
            data = self._load()
            raw = self._require(data, entry_id)
            raw["watches"] = [w.to_dict() for w in watches]
            raw["meta"] = meta.to_dict()
            raw["watch_status"] = meta.status
            raw["updated_at"] = utc_now_iso()
            self._save(data)

    def update_entry_rating(self, entry_id: str, user_id: str, rating: Optional[str]) -> None:
        with self._lock:
            data = self._load()
            raw = self._require(data, entry_id)
            ratings = dict(raw.get("user_ratings") or {})
            if rating:
                ratings[user_id] = rating
            else:
                ratings.pop(user_id, None)
            raw["user_ratings"] = ratings
            raw["updated_at"] = utc_now_iso()
            self._save(data)

    def delete_entry(self, entry_id: str) -> None:
        with self._lock:
            data = self._load()
            if data["entries"].pop(entry_id, None) is None:
                raise PersistenceError(f"Entry {entry_id} does not exist")
            self._save(data)


__all__ = ["EntryStore", "JsonEntryStore"]
