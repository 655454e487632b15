# sw_platform/models.py
# ShareWatch - entries, watches, column mappings and import bookkeeping
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, Optional

MediaType = Literal["movie", "tv"]
EntryStatus = Literal["planned", "in_progress", "finished"]
RatingValue = Literal["disliked", "liked", "loved"]
ListRole = Literal["owner", "member"]

MEDIA_TYPES: tuple[str, ...] = ("movie", "tv")
ENTRY_STATUSES: tuple[str, ...] = ("planned", "in_progress", "finished")
RATING_VALUES: tuple[str, ...] = ("disliked", "liked", "loved")


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now_iso() -> str:
    # Same shape as JS toISOString(): lexicographic order == chronological order.
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v)
    return s if s != "" else None


@dataclass
class Watch:
    id: str
    status: EntryStatus
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    platform: Optional[str] = None
    notes: Optional[str] = None
    added_by: str = ""
    added_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Watch":
        status = str(d.get("status") or "planned")
        return cls(
            id=str(d.get("id") or new_id()),
            status=status if status in ENTRY_STATUSES else "planned",  # type: ignore[arg-type]
            start_date=_opt_str(d.get("start_date")),
            end_date=_opt_str(d.get("end_date")),
            platform=_opt_str(d.get("platform")),
            notes=_opt_str(d.get("notes")),
            added_by=str(d.get("added_by") or ""),
            added_at=str(d.get("added_at") or ""),
        )


@dataclass(frozen=True)
class EntryMeta:
    status: EntryStatus = "planned"
    first_start_date: Optional[str] = None
    first_end_date: Optional[str] = None
    last_start_date: Optional[str] = None
    last_end_date: Optional[str] = None
    last_platform: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any] | None) -> "EntryMeta":
        d = d or {}
        status = str(d.get("status") or "planned")
        return cls(
            status=status if status in ENTRY_STATUSES else "planned",  # type: ignore[arg-type]
            first_start_date=_opt_str(d.get("first_start_date")),
            first_end_date=_opt_str(d.get("first_end_date")),
            last_start_date=_opt_str(d.get("last_start_date")),
            last_end_date=_opt_str(d.get("last_end_date")),
            last_platform=_opt_str(d.get("last_platform")),
        )


@dataclass
class Entry:
    id: str
    list_id: str
    title: str
    media_type: MediaType = "movie"
    tmdb_id: int = 0
    added_by: str = ""
    original_title: str = ""
    overview: str = ""
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[str] = None
    first_air_date: Optional[str] = None
    runtime: Optional[int] = None
    episode_run_time: list[int] = field(default_factory=list)
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    genres: list[dict[str, Any]] = field(default_factory=list)
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    release_status: str = ""
    imdb_id: Optional[str] = None
    original_language: str = ""
    networks: list[dict[str, Any]] = field(default_factory=list)
    watches: list[Watch] = field(default_factory=list)
    meta: EntryMeta = field(default_factory=EntryMeta)
    user_ratings: dict[str, str] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    @property
    def watch_status(self) -> EntryStatus:
        return self.meta.status

    @property
    def is_stub(self) -> bool:
        return not self.tmdb_id

    def rating_for(self, user_id: Optional[str] = None) -> Optional[str]:
        if user_id is not None:
            return self.user_ratings.get(user_id)
        return next(iter(self.user_ratings.values()), None)

    def find_watch(self, watch_id: str) -> Optional[Watch]:
        return next((w for w in self.watches if w.id == watch_id), None)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["watch_status"] = self.meta.status
        return out

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Entry":
        known = {f.name for f in fields(cls)}
        kw: dict[str, Any] = {k: v for k, v in d.items() if k in known}
        kw["watches"] = [Watch.from_dict(w) for w in (d.get("watches") or []) if isinstance(w, Mapping)]
        kw["meta"] = EntryMeta.from_dict(d.get("meta"))
        kw["user_ratings"] = {str(k): str(v) for k, v in (d.get("user_ratings") or {}).items() if v}
        try:
            kw["tmdb_id"] = int(d.get("tmdb_id") or 0)
        except (TypeError, ValueError):
            kw["tmdb_id"] = 0
        return cls(**kw)


# ------------------------------------------------------------
# Column mapping
# ------------------------------------------------------------
MAPPING_FIELDS: tuple[str, ...] = (
    "title",
    "media_type",
    "status",
    "start_date",
    "end_date",
    "platform",
    "notes",
    "rating",
    "catalog_id",
)


@dataclass
class ColumnMapping:
    title: Optional[str] = None
    media_type: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    platform: Optional[str] = None
    notes: Optional[str] = None
    rating: Optional[str] = None
    catalog_id: Optional[str] = None

    def get(self, name: str) -> Optional[str]:
        if name not in MAPPING_FIELDS:
            raise KeyError(name)
        return getattr(self, name)

    def bind(self, name: str, header: Optional[str]) -> None:
        """Bind a field to a header (or unbind with None); a header feeds one field at most."""
        if name not in MAPPING_FIELDS:
            raise KeyError(name)
        header = header or None
        if header is not None:
            for other in MAPPING_FIELDS:
                if other != name and getattr(self, other) == header:
                    setattr(self, other, None)
        setattr(self, name, header)

    def bound(self) -> dict[str, str]:
        return {f: getattr(self, f) for f in MAPPING_FIELDS if getattr(self, f)}

    def to_dict(self) -> dict[str, Optional[str]]:
        return {f: getattr(self, f) for f in MAPPING_FIELDS}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any] | None) -> "ColumnMapping":
        m = cls()
        for k, v in (d or {}).items():
            if k in MAPPING_FIELDS and v:
                m.bind(k, str(v))
        return m


# ------------------------------------------------------------
# Import bookkeeping
# ------------------------------------------------------------
@dataclass
class ParsedIntent:
    title: str
    media_type: MediaType = "movie"
    status: Optional[EntryStatus] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    platform: Optional[str] = None
    notes: Optional[str] = None
    rating: Optional[RatingValue] = None
    catalog_id: Optional[int] = None


@dataclass(frozen=True)
class RowError:
    row: int
    title: str
    error: str


@dataclass(frozen=True)
class ImportProgress:
    processed: int
    total: int

    @property
    def done(self) -> bool:
        return self.processed >= self.total


@dataclass
class ImportResult:
    created: int = 0
    merged: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[RowError] = field(default_factory=list)

    def record_failure(self, row: int, title: str, message: str) -> None:
        self.failed += 1
        self.errors.append(RowError(row=row, title=title, error=message))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


__all__ = [
    "MediaType",
    "EntryStatus",
    "RatingValue",
    "ListRole",
    "MEDIA_TYPES",
    "ENTRY_STATUSES",
    "RATING_VALUES",
    "MAPPING_FIELDS",
    "Watch",
    "EntryMeta",
    "Entry",
    "ColumnMapping",
    "ParsedIntent",
    "RowError",
    "ImportProgress",
    "ImportResult",
    "new_id",
    "utc_now_iso",
    "today_iso",
]
