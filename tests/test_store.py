# ShareWatch test scripts
from __future__ import annotations

import json
from pathlib import Path

import pytest

from sw_platform.errors import PersistenceError
from sw_platform.models import Entry, EntryMeta, Watch, new_id
from sw_platform.store import JsonEntryStore


def _entry(list_id: str = "L", title: str = "Heat") -> Entry:
    return Entry(id=new_id(), list_id=list_id, title=title)


def test_missing_file_reads_as_empty(tmp_path: Path) -> None:
    store = JsonEntryStore(tmp_path / "nope" / "entries.json")
    assert store.find_entries_by_list("L") == []
    assert store.get_entry("x") is None


def test_create_persists_document(store) -> None:
    e = store.create_entry(_entry())
    assert e.created_at and e.updated_at

    doc = json.loads(store.path.read_text(encoding="utf-8"))
    assert doc["version"] == 1
    raw = doc["entries"][e.id]
    assert raw["title"] == "Heat"
    assert raw["watch_status"] == "planned"


def test_duplicate_id_is_rejected(store) -> None:
    e = store.create_entry(_entry())
    with pytest.raises(PersistenceError):
        store.create_entry(Entry(id=e.id, list_id="L", title="Other"))


def test_find_filters_by_list_and_orders_by_update(tmp_path: Path) -> None:
    p = tmp_path / "entries.json"
    entries = {
        "a": {"id": "a", "list_id": "L", "title": "A", "updated_at": "2024-01-01T00:00:00.000Z"},
        "b": {"id": "b", "list_id": "M", "title": "B", "updated_at": "2024-03-01T00:00:00.000Z"},
        "c": {"id": "c", "list_id": "L", "title": "C", "updated_at": "2024-02-01T00:00:00.000Z"},
    }
    p.write_text(json.dumps({"version": 1, "entries": entries}), encoding="utf-8")
    store = JsonEntryStore(p)
    assert [e.title for e in store.find_entries_by_list("L")] == ["C", "A"]

    store.update_entry_rating("a", "u", "liked")
    assert [e.title for e in store.find_entries_by_list("L")] == ["A", "C"]


def test_update_watches_and_rating_round_trip(store) -> None:
    e = store.create_entry(_entry())
    w = Watch(id="w1", status="in_progress", start_date="2024-01-01", added_by="u")
    meta = EntryMeta(status="in_progress", first_start_date="2024-01-01", last_start_date="2024-01-01")
    store.update_entry_watches(e.id, [w], meta)
    store.update_entry_rating(e.id, "u", "loved")

    got = store.get_entry(e.id)
    assert got.watches == [w]
    assert got.meta == meta
    assert got.watch_status == "in_progress"
    assert got.user_ratings == {"u": "loved"}

    store.update_entry_rating(e.id, "u", None)
    assert store.get_entry(e.id).user_ratings == {}


def test_writes_to_unknown_entry_fail(store) -> None:
    with pytest.raises(PersistenceError):
        store.update_entry_watches("ghost", [], EntryMeta())
    with pytest.raises(PersistenceError):
        store.update_entry_rating("ghost", "u", "liked")
    with pytest.raises(PersistenceError):
        store.delete_entry("ghost")


def test_corrupt_document_raises_persistence_error(tmp_path: Path) -> None:
    p = tmp_path / "entries.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonEntryStore(p).find_entries_by_list("L")


def test_unknown_keys_are_ignored_on_read(tmp_path: Path) -> None:
    p = tmp_path / "entries.json"
    p.write_text(
        json.dumps({"version": 1, "entries": {"e1": {"id": "e1", "list_id": "L", "title": "Old", "legacy": True, "tmdb_id": "12"}}}),
        encoding="utf-8",
    )
    e = JsonEntryStore(p).get_entry("e1")
    assert e.title == "Old"
    assert e.tmdb_id == 12
    assert e.meta.status == "planned"


def test_unknown_watch_status_reads_as_planned() -> None:
    assert Watch.from_dict({"id": "w1", "status": "bogus", "start_date": "2024-01-01"}).status == "planned"
    assert Watch.from_dict({"id": "w2"}).status == "planned"
    assert Watch.from_dict({"id": "w3", "status": "finished"}).status == "finished"
