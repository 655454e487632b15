# services/csv_parser.py
# ShareWatch - decode uploaded CSV files and turn rows into import intents
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

import csv
import io
import re
from datetime import date, datetime
from typing import Mapping, Optional

from sw_platform.errors import DecodeError
from sw_platform.models import (
    MAPPING_FIELDS,
    ColumnMapping,
    EntryStatus,
    MediaType,
    ParsedIntent,
    RatingValue,
)

CSVRow = dict[str, str]

# ------------------------------------------------------------
# Decoding
# ------------------------------------------------------------
def _blank(record: list[str]) -> bool:
    return not record or all(not (c or "").strip() for c in record)


def _unique_headers(raw: list[str]) -> list[str]:
    seen: dict[str, int] = {}
    out: list[str] = []
    for h in raw:
        n = seen.get(h, 0)
        seen[h] = n + 1
        out.append(h if n == 0 else f"{h}_{n}")
    return out


def decode_csv(data: bytes | str) -> tuple[list[str], list[CSVRow]]:
    """
    Parse delimited text into (headers, rows).

    Quoted fields, doubled quotes and CRLF/LF endings are handled by the csv module.
    Blank lines are dropped, short rows are padded with "" and surplus cells ignored.
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Failed to parse CSV: not UTF-8 text ({e.reason})") from e
    else:
        text = data.lstrip("\ufeff")

    try:
        records = [r for r in csv.reader(io.StringIO(text, newline=""), strict=False) if not _blank(r)]
    except csv.Error as e:
        raise DecodeError(f"Failed to parse CSV: {e}") from e

    if not records:
        raise DecodeError("CSV file is empty")

    headers = _unique_headers([h.strip() for h in records[0]])
    rows: list[CSVRow] = []
    for rec in records[1:]:
        rows.append({h: (rec[i] if i < len(rec) else "") for i, h in enumerate(headers)})

    if not rows:
        raise DecodeError("CSV file is empty")
    return headers, rows


# ------------------------------------------------------------
# Column-mapping heuristic
# ------------------------------------------------------------
HEADER_SYNONYMS: dict[str, tuple[str, ...]] = {
    "title": ("title", "name", "movie", "show", "film"),
    "media_type": ("type", "media type", "mediatype", "kind", "category"),
    "status": ("status", "watch status", "state"),
    "start_date": ("start", "start date", "startdate", "started", "began", "date started"),
    "end_date": ("end", "end date", "enddate", "finished", "completed", "date finished", "date completed"),
    "platform": ("platform", "service", "streaming", "where", "watched on"),
    "notes": ("notes", "note", "comments", "comment", "review"),
    "rating": ("rating", "score", "my rating", "your rating"),
    "catalog_id": ("catalogid", "catalog id", "catalog_id", "tmdbid", "tmdb_id", "tmdb id", "tmdb"),
}


def auto_detect_mapping(headers: list[str]) -> ColumnMapping:
    """Exact, case-insensitive synonym match; fields claim headers in priority order."""
    lowered = [(h or "").lower().strip() for h in headers]
    claimed: set[int] = set()
    mapping = ColumnMapping()
    for name in MAPPING_FIELDS:
        for syn in HEADER_SYNONYMS[name]:
            idx = next((i for i, h in enumerate(lowered) if h == syn and i not in claimed), None)
            if idx is not None:
                claimed.add(idx)
                mapping.bind(name, headers[idx])
                break
    return mapping


# ------------------------------------------------------------
# Value normalizers (total: unknown input -> None)
# ------------------------------------------------------------
_STATUS_VALUES: dict[str, tuple[str, ...]] = {
    "planned": ("planned", "plan", "to watch", "watchlist", "want to watch"),
    "in_progress": ("watching", "in progress", "in_progress", "started", "currently watching"),
    "finished": ("finished", "watched", "completed", "done", "seen"),
}

_MEDIA_VALUES: dict[str, tuple[str, ...]] = {
    "movie": ("movie", "film", "movies", "films"),
    "tv": ("tv", "tv show", "series", "show", "television", "tv series"),
}

_RATING_VALUES: dict[str, tuple[str, ...]] = {
    "loved": ("loved", "love", "5", "10", "amazing", "excellent", "favorite"),
    "liked": ("liked", "like", "4", "8", "9", "good", "great"),
    "disliked": ("disliked", "dislike", "1", "2", "3", "bad", "poor", "awful"),
}


def _lookup(table: Mapping[str, tuple[str, ...]], value: Optional[str]) -> Optional[str]:
    v = (value or "").lower().strip()
    if not v:
        return None
    for key, values in table.items():
        if v in values:
            return key
    return None


def normalize_status(value: Optional[str]) -> Optional[EntryStatus]:
    return _lookup(_STATUS_VALUES, value)  # type: ignore[return-value]


def normalize_media_type(value: Optional[str]) -> Optional[MediaType]:
    return _lookup(_MEDIA_VALUES, value)  # type: ignore[return-value]


def normalize_rating(value: Optional[str]) -> Optional[RatingValue]:
    return _lookup(_RATING_VALUES, value)  # type: ignore[return-value]


def parse_catalog_id(value: Optional[str]) -> Optional[int]:
    m = re.match(r"\s*\+?(\d+)", value or "")
    if not m:
        return None
    n = int(m.group(1))
    return n if n > 0 else None


_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

_GENERIC_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%d.%m.%Y",
    "%Y%m%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%a %b %d %Y",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
)


def _safe_date(y: int, m: int, d: int) -> Optional[str]:
    try:
        return date(y, m, d).isoformat()
    except ValueError:
        return None


def _slash_date(a: int, b: int, year: int, order: str) -> Optional[str]:
    if order == "dmy":
        return _safe_date(year, b, a)
    if order == "auto":
        return _safe_date(year, a, b) or _safe_date(year, b, a)
    return _safe_date(year, a, b)


def parse_date(value: Optional[str], *, slash_order: str = "mdy") -> Optional[str]:
    """
    Lenient date parsing to YYYY-MM-DD.

    D/D/YYYY is ambiguous; ``slash_order`` ("mdy", "dmy" or "auto") decides how it is
    read. Impossible dates (e.g. 31/02/2024) and anything unparseable give None.
    """
    s = (value or "").strip()
    if not s:
        return None

    m = _ISO_DATE.match(s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _SLASH_DATE.match(s)
    if m:
        return _slash_date(int(m.group(1)), int(m.group(2)), int(m.group(3)), slash_order)

    iso = s[:-1] + "+00:00" if s.endswith("Z") else s
    try:
        return datetime.fromisoformat(iso).date().isoformat()
    except ValueError:
        pass

    for fmt in _GENERIC_FORMATS:
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue
    return None


# ------------------------------------------------------------
# Row -> intent
# ------------------------------------------------------------
def _cell(row: Mapping[str, str], header: Optional[str]) -> str:
    if not header:
        return ""
    return str(row.get(header) or "").strip()


def map_row_to_intent(
    row: Mapping[str, str],
    mapping: ColumnMapping,
    *,
    slash_order: str = "mdy",
) -> Optional[ParsedIntent]:
    title = _cell(row, mapping.title)
    if not title:
        return None

    return ParsedIntent(
        title=title,
        media_type=normalize_media_type(_cell(row, mapping.media_type)) or "movie",
        status=normalize_status(_cell(row, mapping.status)),
        start_date=parse_date(_cell(row, mapping.start_date), slash_order=slash_order),
        end_date=parse_date(_cell(row, mapping.end_date), slash_order=slash_order),
        platform=_cell(row, mapping.platform) or None,
        notes=_cell(row, mapping.notes) or None,
        rating=normalize_rating(_cell(row, mapping.rating)),
        catalog_id=parse_catalog_id(_cell(row, mapping.catalog_id)),
    )


def infer_status(intent: ParsedIntent) -> EntryStatus:
    if intent.status:
        return intent.status
    if intent.end_date:
        return "finished"
    if intent.start_date:
        return "in_progress"
    return "planned"


__all__ = [
    "CSVRow",
    "HEADER_SYNONYMS",
    "decode_csv",
    "auto_detect_mapping",
    "normalize_status",
    "normalize_media_type",
    "normalize_rating",
    "parse_catalog_id",
    "parse_date",
    "map_row_to_intent",
    "infer_status",
]
