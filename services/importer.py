# services/importer.py
# ShareWatch - reconcile imported CSV rows into a list's entries and watches
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

from typing import Any, Callable, Iterable, Literal, Optional, Protocol, Sequence

from _logging import log as _root_log
from sw_platform.config_base import load_config
from sw_platform.entry_meta import compute_entry_meta
from sw_platform.errors import InvalidWatch, MappingError, RowFailed
from sw_platform.models import (
    ColumnMapping,
    Entry,
    EntryStatus,
    ImportProgress,
    ImportResult,
    ParsedIntent,
    Watch,
    new_id,
    today_iso,
    utc_now_iso,
)
from sw_platform.store import EntryStore

from .csv_parser import CSVRow, auto_detect_mapping, decode_csv, infer_status, map_row_to_intent

log = _root_log.child("IMPORT")

Outcome = Literal["created", "merged"]
ProgressFn = Callable[[ImportProgress], None]


class CatalogLookup(Protocol):
    def search_title(self, query: str) -> list[dict[str, Any]]: ...
    def get_details(self, media_type: str, tmdb_id: int | str) -> dict[str, Any]: ...


def validate_watches(watches: Iterable[Watch]) -> None:
    for w in watches:
        if w.start_date and w.end_date and w.end_date < w.start_date:
            raise InvalidWatch(f"End date {w.end_date} is before start date {w.start_date}")


# ------------------------------------------------------------
# Catalog enrichment
# ------------------------------------------------------------
def _pick_candidate(results: Sequence[dict[str, Any]], media_type: str) -> Optional[dict[str, Any]]:
    return next((r for r in results if r.get("media_type") == media_type), None) or (results[0] if results else None)


def _networks(details: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {"id": n.get("id"), "name": n.get("name"), "logo_path": n.get("logo_path")}
        for n in (details.get("networks") or [])
        if isinstance(n, dict)
    ]


def entry_from_details(details: dict[str, Any], media_type: str, *, list_id: str, user_id: str) -> Entry:
    kind = "tv" if media_type == "tv" else "movie"
    e = Entry(
        id=new_id(),
        list_id=list_id,
        added_by=user_id,
        tmdb_id=int(details.get("id") or 0),
        media_type=kind,
        title=str((details.get("title") if kind == "movie" else details.get("name")) or ""),
        original_title=str((details.get("original_title") if kind == "movie" else details.get("original_name")) or ""),
        overview=str(details.get("overview") or ""),
        poster_path=details.get("poster_path"),
        backdrop_path=details.get("backdrop_path"),
        genres=[g for g in (details.get("genres") or []) if isinstance(g, dict)],
        vote_average=float(details.get("vote_average") or 0.0),
        vote_count=int(details.get("vote_count") or 0),
        popularity=float(details.get("popularity") or 0.0),
        release_status=str(details.get("status") or ""),
        original_language=str(details.get("original_language") or ""),
    )
    if kind == "movie":
        e.release_date = details.get("release_date") or None
        e.runtime = details.get("runtime")
        e.imdb_id = details.get("imdb_id")
    else:
        e.first_air_date = details.get("first_air_date") or None
        e.episode_run_time = [x for x in (details.get("episode_run_time") or []) if isinstance(x, int)]
        e.number_of_seasons = details.get("number_of_seasons")
        e.number_of_episodes = details.get("number_of_episodes")
        e.networks = _networks(details)
    return e


def stub_entry(intent: ParsedIntent, *, list_id: str, user_id: str) -> Entry:
    return Entry(
        id=new_id(),
        list_id=list_id,
        added_by=user_id,
        tmdb_id=0,
        media_type=intent.media_type,
        title=intent.title,
        original_title=intent.title,
    )


# ------------------------------------------------------------
# Reconciler
# ------------------------------------------------------------
class ImportReconciler:
    """
    Merge parsed rows into one list's entries for the duration of a single run.

    Entries are loaded once and indexed by lower-cased title and by catalog id; entries
    created during the run are added to both indexes so later rows merge onto them. A
    title that misses but resolves to a catalog id already on the list merges there too.
    """

    def __init__(
        self,
        store: EntryStore,
        catalog: Optional[CatalogLookup],
        *,
        list_id: str,
        user_id: str,
        today: Optional[Callable[[], str]] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.list_id = list_id
        self.user_id = user_id
        self.today = today or today_iso
        self._index: dict[str, Entry] = {}
        self._by_catalog: dict[tuple[str, int], Entry] = {}
        for e in store.find_entries_by_list(list_id):
            self._remember(e.title, e)

    def _remember(self, title: str, entry: Entry) -> None:
        key = (title or "").strip().lower()
        if key:
            self._index.setdefault(key, entry)
        if entry.tmdb_id:
            self._by_catalog.setdefault((entry.media_type, entry.tmdb_id), entry)

    def find(self, title: str) -> Optional[Entry]:
        return self._index.get(title.strip().lower())

    def apply(self, intent: ParsedIntent) -> Outcome:
        status = infer_status(intent)
        existing = self.find(intent.title)
        if existing is None:
            enriched = self._lookup(intent)
            if enriched is not None:
                existing = self._by_catalog.get((enriched.media_type, enriched.tmdb_id))
            if existing is None:
                self._create(intent, status, enriched)
                return "created"
            log.info(f"'{intent.title}' resolves to '{existing.title}' already on the list, merging")
            self._remember(intent.title, existing)
        self._merge(existing, intent, status)
        return "merged"

    # (a) existing title
    def _merge(self, entry: Entry, intent: ParsedIntent, status: EntryStatus) -> None:
        if status != "planned" and intent.start_date:
            watches = [Watch(**w.to_dict()) for w in entry.watches]
            match = next((w for w in watches if w.start_date == intent.start_date), None)
            if match is not None:
                match.status = status
                match.end_date = intent.end_date
                match.platform = intent.platform
                match.notes = intent.notes
            else:
                watches.append(
                    Watch(
                        id=new_id(),
                        status=status,
                        start_date=intent.start_date,
                        end_date=intent.end_date,
                        platform=intent.platform,
                        notes=intent.notes,
                        added_by=self.user_id,
                        added_at=utc_now_iso(),
                    )
                )
            validate_watches(watches)
            meta = compute_entry_meta(watches)
            self.store.update_entry_watches(entry.id, watches, meta)
            entry.watches, entry.meta = watches, meta

        if intent.rating:
            self.store.update_entry_rating(entry.id, self.user_id, intent.rating)
            entry.user_ratings[self.user_id] = intent.rating

    # (b) new title
    def _lookup(self, intent: ParsedIntent) -> Optional[Entry]:
        if self.catalog is None:
            return None
        try:
            if intent.catalog_id:
                details = self.catalog.get_details(intent.media_type, intent.catalog_id)
                media_type = intent.media_type
            else:
                hit = _pick_candidate(self.catalog.search_title(intent.title), intent.media_type)
                if hit is None:
                    log.info(f"no catalog match for '{intent.title}', creating stub entry")
                    return None
                media_type = str(hit.get("media_type") or intent.media_type)
                details = self.catalog.get_details(media_type, hit["id"])
        except Exception as e:
            log.warn(f"catalog lookup failed for '{intent.title}' ({type(e).__name__}: {e}); creating stub entry")
            return None
        return entry_from_details(details, media_type, list_id=self.list_id, user_id=self.user_id)

    def _seed_watches(self, intent: ParsedIntent, status: EntryStatus) -> list[Watch]:
        if status == "planned":
            return []
        start, end = intent.start_date or self.today(), None
        if status == "finished":
            # An end date alone means a same-day watch, never a start after the end.
            start = intent.start_date or intent.end_date or self.today()
            end = intent.end_date or start
        return [
            Watch(
                id=new_id(),
                status=status,
                start_date=start,
                end_date=end,
                platform=intent.platform,
                notes=intent.notes,
                added_by=self.user_id,
                added_at=utc_now_iso(),
            )
        ]

    def _create(self, intent: ParsedIntent, status: EntryStatus, enriched: Optional[Entry]) -> Entry:
        entry = enriched or stub_entry(intent, list_id=self.list_id, user_id=self.user_id)
        if not entry.title:
            entry.title = intent.title
        entry.watches = self._seed_watches(intent, status)
        validate_watches(entry.watches)
        entry.meta = compute_entry_meta(entry.watches)
        if intent.rating:
            entry.user_ratings = {self.user_id: intent.rating}

        created = self.store.create_entry(entry)
        self._remember(intent.title, created)
        self._remember(created.title, created)
        return created


# ------------------------------------------------------------
# Orchestrator
# ------------------------------------------------------------
def _row_title(row: CSVRow, mapping: ColumnMapping) -> str:
    return str(row.get(mapping.title or "") or "").strip() or "(unknown)"


def _import_row(
    reconciler: ImportReconciler,
    index: int,
    row: CSVRow,
    mapping: ColumnMapping,
    slash_order: str,
) -> Optional[Outcome]:
    # Row numbers are 1-based and count the header line.
    try:
        intent = map_row_to_intent(row, mapping, slash_order=slash_order)
        if intent is None:
            return None
        return reconciler.apply(intent)
    except Exception as e:
        raise RowFailed(index + 2, _row_title(row, mapping), str(e) or type(e).__name__) from e


def run_import(
    rows: Sequence[CSVRow],
    mapping: ColumnMapping,
    *,
    list_id: str,
    user_id: str,
    store: EntryStore,
    catalog: Optional[CatalogLookup] = None,
    on_progress: Optional[ProgressFn] = None,
    slash_order: Optional[str] = None,
    today: Optional[Callable[[], str]] = None,
) -> ImportResult:
    """
    Import rows one at a time, in order.

    Each row is finished (created, merged, skipped or failed) before the next starts,
    so two rows for the same title can never race to create two entries.
    """
    if not mapping.title:
        raise MappingError("Map a column to Title before importing")
    if slash_order is None:
        slash_order = str((load_config().get("import") or {}).get("slash_date_order") or "mdy")

    result = ImportResult()
    total = len(rows)
    reconciler = ImportReconciler(store, catalog, list_id=list_id, user_id=user_id, today=today)
    log.info(f"importing {total} row(s) into list {list_id}")

    for i, row in enumerate(rows):
        try:
            outcome = _import_row(reconciler, i, row, mapping, slash_order)
            if outcome is None:
                result.skipped += 1
            elif outcome == "created":
                result.created += 1
            else:
                result.merged += 1
        except RowFailed as rf:
            result.record_failure(rf.row, rf.title, rf.message)
            log.warn(f"row {rf.row} '{rf.title}' failed: {rf.message}")

        if on_progress is not None:
            on_progress(ImportProgress(processed=i + 1, total=total))

    log.success(
        f"import into {list_id} done: created={result.created} merged={result.merged} "
        f"failed={result.failed} skipped={result.skipped}"
    )
    return result


def import_csv(
    data: bytes | str,
    mapping: Optional[ColumnMapping] = None,
    **kwargs: Any,
) -> ImportResult:
    """Decode, auto-detect the mapping when none is given, then run the import."""
    headers, rows = decode_csv(data)
    if mapping is None:
        mapping = auto_detect_mapping(headers)
    return run_import(rows, mapping, **kwargs)


__all__ = [
    "CatalogLookup",
    "ImportReconciler",
    "entry_from_details",
    "stub_entry",
    "validate_watches",
    "run_import",
    "import_csv",
]
