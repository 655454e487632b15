# services/export.py
# ShareWatch - export a list's entries and watches as CSV
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

import csv
import io
import time
from typing import Iterable, Optional

from fastapi import APIRouter, HTTPException, Query, Response

from sw_platform.errors import PersistenceError
from sw_platform.models import Entry, Watch
from sw_platform.runtime import get_store

router = APIRouter(prefix="/api", tags=["export"])

EXPORT_HEADER: list[str] = [
    "catalogId",
    "title",
    "mediaType",
    "status",
    "startDate",
    "endDate",
    "platform",
    "notes",
    "rating",
]


def _watch_row(entry: Entry, watch: Watch, rating: str) -> list[str]:
    return [
        str(entry.tmdb_id) if entry.tmdb_id else "",
        entry.title,
        entry.media_type,
        watch.status,
        watch.start_date or "",
        watch.end_date or "",
        watch.platform or "",
        watch.notes or "",
        rating,
    ]


def _planned_row(entry: Entry, rating: str) -> list[str]:
    return [
        str(entry.tmdb_id) if entry.tmdb_id else "",
        entry.title,
        entry.media_type,
        "planned",
        "",
        "",
        entry.meta.last_platform or "",
        "",
        rating,
    ]


def iter_export_rows(entries: Iterable[Entry], user_id: Optional[str] = None) -> Iterable[list[str]]:
    for entry in entries:
        rating = entry.rating_for(user_id) or ""
        if not entry.watches:
            yield _planned_row(entry, rating)
            continue
        for w in entry.watches:
            yield _watch_row(entry, w, rating)


def entries_to_csv(entries: Iterable[Entry], user_id: Optional[str] = None) -> str:
    """One line per watch (a single "planned" line for entries without watches)."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(EXPORT_HEADER)
    for r in iter_export_rows(entries, user_id):
        w.writerow(r)
    return buf.getvalue()


def _csv_response(filename: str, content: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )


@router.get("/lists/{list_id}/export")
def api_export_list(
    list_id: str,
    user_id: str = Query("", description="rating column uses this user's rating"),
) -> Response:
    try:
        entries = get_store().find_entries_by_list(list_id)
    except PersistenceError as e:
        raise HTTPException(500, str(e))
    ts = time.strftime("%Y%m%d")
    return _csv_response(f"sharewatch_{list_id}_{ts}.csv", entries_to_csv(entries, user_id or None))


__all__ = ["EXPORT_HEADER", "entries_to_csv", "iter_export_rows", "router"]
