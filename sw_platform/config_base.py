# sw_platform/config_base.py
# ShareWatch - config.json location, defaults and the atomic JSON writer shared with the entry store
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

import copy
import json
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Dict

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config and data files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in container that mounts /config)
      3) Project root (two levels up from this file)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Catalog -------------------------------------------------------------
    "tmdb": {"api_key": ""},                            # Falls back to $TMDB_API_KEY when empty

    "metadata": {
        "locale": "en-US",                              # Language passed to TMDb search/detail calls
        "timeout": 10.0,                                # HTTP timeout (seconds); a timeout degrades to a stub entry
        "ttl_hours": 6,                                 # Coarse response cache TTL
        "backoff_max_retries": 2,                       # Retry budget for 429/5xx/timeouts
        "backoff_base_ms": 500,
        "backoff_max_ms": 4000,
    },

    # --- Storage -------------------------------------------------------------
    "storage": {
        "root_dir": ".sharewatch",                      # Relative paths resolve under CONFIG_BASE()
        "entries_file": "entries.json",
    },

    # --- Import --------------------------------------------------------------
    "import": {
        "slash_date_order": "mdy",                      # "mdy" | "dmy" | "auto" for D/D/YYYY dates
        "preview_rows": 100,                            # Rows returned by /api/import/preview
    },

    # --- Runtime / Diagnostics ----------------------------------------------
    "runtime": {
        "debug": False,                                 # Extra verbose logging (debug level)
        "log_level": "info",                            # silent | error | warn | info | debug
        "log_json": "",                                 # Optional JSON-lines log file
    },
}

SLASH_ORDERS = ("mdy", "dmy", "auto")


def _base() -> Path:
    return CONFIG_BASE()


def _cfg_file() -> Path:
    return _base() / "config.json"

def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _normalize_import(block: Dict[str, Any]) -> Dict[str, Any]:
    order = str(block.get("slash_date_order") or "mdy").strip().lower()
    block["slash_date_order"] = order if order in SLASH_ORDERS else "mdy"
    try:
        block["preview_rows"] = max(1, int(block.get("preview_rows") or 100))
    except (TypeError, ValueError):
        block["preview_rows"] = 100
    return block


def load_config() -> Dict[str, Any]:
    """
    Read config.json merged over DEFAULT_CFG.
    """
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except (OSError, ValueError):
            user_cfg = {}

    cfg = _deep_merge(DEFAULT_CFG, user_cfg)
    cfg["import"] = _normalize_import(cfg.get("import") or {})

    tmdb = cfg.setdefault("tmdb", {})
    if not str(tmdb.get("api_key") or "").strip():
        tmdb["api_key"] = os.getenv("TMDB_API_KEY", "")

    return cfg


def data_dir(cfg: Dict[str, Any] | None = None) -> Path:
    cfg = cfg if cfg is not None else load_config()
    root = Path(str((cfg.get("storage") or {}).get("root_dir") or ".sharewatch"))
    if not root.is_absolute():
        root = _base() / root
    return root


def entries_path(cfg: Dict[str, Any] | None = None) -> Path:
    cfg = cfg if cfg is not None else load_config()
    name = str((cfg.get("storage") or {}).get("entries_file") or "entries.json")
    return data_dir(cfg) / name
