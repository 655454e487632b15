# services/watches.py
# ShareWatch - watch add/update/delete, ratings and entry removal
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

from typing import Any, Optional

from _logging import log as _root_log
from sw_platform.entry_meta import compute_entry_meta
from sw_platform.errors import (
    EntryNotFound,
    InvalidWatch,
    LastWatchError,
    NotAuthorized,
    WatchNotFound,
)
from sw_platform.models import (
    ENTRY_STATUSES,
    RATING_VALUES,
    Entry,
    EntryMeta,
    ListRole,
    Watch,
    new_id,
    utc_now_iso,
)
from sw_platform.store import EntryStore

from .importer import validate_watches

log = _root_log.child("WATCHES")

_EDITABLE = ("status", "start_date", "end_date", "platform", "notes")


def _load(store: EntryStore, list_id: str, entry_id: str) -> Entry:
    entry = store.get_entry(entry_id)
    if entry is None or entry.list_id != list_id:
        raise EntryNotFound(f"Entry {entry_id} not found in list {list_id}")
    return entry


def _save(store: EntryStore, entry: Entry, watches: list[Watch]) -> EntryMeta:
    validate_watches(watches)
    meta = compute_entry_meta(watches)
    store.update_entry_watches(entry.id, watches, meta)
    entry.watches, entry.meta = watches, meta
    return meta


def _check_owner(watch: Watch, user_id: str, role: ListRole, action: str) -> None:
    if role != "owner" and watch.added_by != user_id:
        raise NotAuthorized(f"Not authorized to {action} this watch")


def add_watch(
    store: EntryStore,
    list_id: str,
    entry_id: str,
    user_id: str,
    *,
    status: str = "finished",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    platform: Optional[str] = None,
    notes: Optional[str] = None,
) -> Watch:
    if status not in ENTRY_STATUSES:
        raise InvalidWatch(f"Unknown watch status '{status}'")
    if status != "planned" and not start_date:
        raise InvalidWatch("Start date is required")

    entry = _load(store, list_id, entry_id)
    watch = Watch(
        id=new_id(),
        status=status,  # type: ignore[arg-type]
        start_date=start_date or None,
        end_date=end_date or None,
        platform=platform or None,
        notes=notes or None,
        added_by=user_id,
        added_at=utc_now_iso(),
    )
    _save(store, entry, [*entry.watches, watch])
    log.debug(f"added watch {watch.id} to entry {entry_id}")
    return watch


def update_watch(
    store: EntryStore,
    list_id: str,
    entry_id: str,
    watch_id: str,
    user_id: str,
    *,
    role: ListRole = "member",
    **changes: Any,
) -> Watch:
    unknown = set(changes) - set(_EDITABLE)
    if unknown:
        raise InvalidWatch(f"Cannot edit watch field(s): {', '.join(sorted(unknown))}")
    if "status" in changes and changes["status"] not in ENTRY_STATUSES:
        raise InvalidWatch(f"Unknown watch status '{changes['status']}'")

    entry = _load(store, list_id, entry_id)
    current = entry.find_watch(watch_id)
    if current is None:
        raise WatchNotFound(f"Watch {watch_id} not found")
    _check_owner(current, user_id, role, "edit")

    watches: list[Watch] = []
    updated = current
    for w in entry.watches:
        if w.id == watch_id:
            data = w.to_dict()
            for k, v in changes.items():
                data[k] = v if k == "status" else (v or None)
            if not data.get("start_date"):
                data["start_date"] = current.start_date
            updated = Watch(**data)
            watches.append(updated)
        else:
            watches.append(w)
    _save(store, entry, watches)
    return updated


def delete_watch(
    store: EntryStore,
    list_id: str,
    entry_id: str,
    watch_id: str,
    user_id: str,
    *,
    role: ListRole = "member",
) -> EntryMeta:
    entry = _load(store, list_id, entry_id)
    watch = entry.find_watch(watch_id)
    if watch is None:
        raise WatchNotFound(f"Watch {watch_id} not found")
    _check_owner(watch, user_id, role, "delete")
    if len(entry.watches) == 1:
        raise LastWatchError("Cannot delete the last watch. Delete the entry instead.")
    return _save(store, entry, [w for w in entry.watches if w.id != watch_id])


def set_rating(
    store: EntryStore,
    list_id: str,
    entry_id: str,
    user_id: str,
    rating: Optional[str],
) -> Entry:
    if rating is not None and rating not in RATING_VALUES:
        raise InvalidWatch(f"Unknown rating '{rating}'")
    entry = _load(store, list_id, entry_id)
    store.update_entry_rating(entry.id, user_id, rating)
    if rating:
        entry.user_ratings[user_id] = rating
    else:
        entry.user_ratings.pop(user_id, None)
    return entry


def remove_entry(store: EntryStore, list_id: str, entry_id: str) -> None:
    entry = _load(store, list_id, entry_id)
    store.delete_entry(entry.id)
    log.info(f"removed entry {entry_id} '{entry.title}' from list {list_id}")


__all__ = ["add_watch", "update_watch", "delete_watch", "set_rating", "remove_entry"]
