# sw_platform/runtime.py
# ShareWatch - process-wide store/catalog wiring for the API and CLI hosts
from __future__ import annotations

import threading
from typing import Any, Optional

from .config_base import entries_path, load_config
from .store import EntryStore, JsonEntryStore

_LOCK = threading.Lock()
_STORE: Optional[EntryStore] = None
_CATALOG: Optional[Any] = None


def get_store() -> EntryStore:
    global _STORE
    with _LOCK:
        if _STORE is None:
            _STORE = JsonEntryStore(entries_path(load_config()))
        return _STORE


def get_catalog() -> Any:
    global _CATALOG
    with _LOCK:
        if _CATALOG is None:
            from providers.metadata._meta_TMDB import build
            _CATALOG = build(load_config)
        return _CATALOG


def configure(*, store: Optional[EntryStore] = None, catalog: Optional[Any] = None) -> None:
    """Swap in a store/catalog (tests, embedding hosts); None resets to the default."""
    global _STORE, _CATALOG
    with _LOCK:
        _STORE = store
        _CATALOG = catalog


__all__ = ["get_store", "get_catalog", "configure"]
