# ShareWatch test scripts
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sw_platform import runtime  # noqa: E402
from sw_platform.store import JsonEntryStore  # noqa: E402


@pytest.fixture(autouse=True)
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    runtime.configure()
    yield tmp_path
    runtime.configure()


@pytest.fixture()
def store(tmp_path: Path) -> JsonEntryStore:
    return JsonEntryStore(tmp_path / "data" / "entries.json")


class FakeCatalog:
    def __init__(
        self,
        results: list[dict[str, Any]] | None = None,
        details: dict[int, dict[str, Any]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.results = results or []
        self.details = details or {}
        self.error = error
        self.calls: list[tuple[Any, ...]] = []

    def search_title(self, query: str) -> list[dict[str, Any]]:
        self.calls.append(("search", query))
        if self.error:
            raise self.error
        return list(self.results)

    def get_details(self, media_type: str, tmdb_id: int | str) -> dict[str, Any]:
        self.calls.append(("details", media_type, int(tmdb_id)))
        if self.error:
            raise self.error
        return self.details[int(tmdb_id)]


MATRIX_DETAILS: dict[str, Any] = {
    "id": 603,
    "title": "The Matrix",
    "original_title": "The Matrix",
    "overview": "A hacker learns the truth.",
    "poster_path": "/matrix.jpg",
    "backdrop_path": "/matrix_bg.jpg",
    "release_date": "1999-03-30",
    "runtime": 136,
    "genres": [{"id": 28, "name": "Action"}],
    "vote_average": 8.2,
    "vote_count": 25000,
    "popularity": 80.5,
    "status": "Released",
    "imdb_id": "tt0133093",
    "original_language": "en",
}


@pytest.fixture()
def matrix_catalog() -> FakeCatalog:
    return FakeCatalog(
        results=[{"id": 603, "media_type": "movie", "title": "The Matrix"}],
        details={603: dict(MATRIX_DETAILS)},
    )
