# ShareWatch test scripts
from __future__ import annotations

import json
from pathlib import Path

import pytest

from sw_platform.config_base import config_path, entries_path, load_config


def _write(base: Path, cfg: dict) -> None:
    (base / "config.json").write_text(json.dumps(cfg), encoding="utf-8")


def test_defaults_without_config_file(config_base: Path) -> None:
    cfg = load_config()
    assert config_path() == config_base / "config.json"
    assert cfg["import"]["slash_date_order"] == "mdy"
    assert cfg["metadata"]["backoff_max_retries"] == 2
    assert cfg["tmdb"]["api_key"] == ""
    assert entries_path(cfg) == config_base / ".sharewatch" / "entries.json"


def test_user_values_merge_over_defaults(config_base: Path) -> None:
    _write(config_base, {"metadata": {"locale": "nl-NL"}, "import": {"slash_date_order": "DMY", "preview_rows": "lots"}})
    cfg = load_config()
    assert cfg["metadata"]["locale"] == "nl-NL"
    assert cfg["metadata"]["timeout"] == 10.0
    assert cfg["import"] == {"slash_date_order": "dmy", "preview_rows": 100}


def test_unknown_slash_order_falls_back(config_base: Path) -> None:
    _write(config_base, {"import": {"slash_date_order": "ymd"}})
    assert load_config()["import"]["slash_date_order"] == "mdy"


def test_api_key_env_fallback(config_base: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TMDB_API_KEY", "from-env")
    assert load_config()["tmdb"]["api_key"] == "from-env"
    _write(config_base, {"tmdb": {"api_key": "from-file"}})
    assert load_config()["tmdb"]["api_key"] == "from-file"


def test_unreadable_config_uses_defaults(config_base: Path) -> None:
    (config_base / "config.json").write_text("{broken", encoding="utf-8")
    assert load_config()["storage"]["entries_file"] == "entries.json"


def test_absolute_storage_root(config_base: Path, tmp_path: Path) -> None:
    root = tmp_path / "elsewhere"
    _write(config_base, {"storage": {"root_dir": str(root), "entries_file": "lists.json"}})
    assert entries_path() == root / "lists.json"
