# sw_platform/entry_meta.py
# ShareWatch - derive an entry's summary (status, first/last dates, platform) from its watches
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

from collections.abc import Iterable

from .models import EntryMeta, Watch


def _sort_key(w: Watch) -> str:
    # Dates are YYYY-MM-DD and added_at is ISO-8601, so string order is time order.
    return w.start_date or w.added_at or ""


def compute_entry_meta(watches: Iterable[Watch]) -> EntryMeta:
    """
    Project a watch set onto the entry summary.

    The entry tracks the chronologically last watch (by start date, falling back to
    when the watch was recorded), not the most recently edited one. An empty set is
    "planned" with every date and platform unset.
    """
    ordered = sorted(watches, key=_sort_key)
    if not ordered:
        return EntryMeta()

    first = ordered[0]
    last = ordered[-1]
    return EntryMeta(
        status=last.status,
        first_start_date=first.start_date or None,
        first_end_date=first.end_date or None,
        last_start_date=last.start_date or None,
        last_end_date=last.end_date or None,
        last_platform=last.platform or None,
    )


__all__ = ["compute_entry_meta"]
