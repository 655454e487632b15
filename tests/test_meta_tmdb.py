# ShareWatch test scripts
from __future__ import annotations

import json
from pathlib import Path

import pytest
import requests
import responses

from providers.metadata import _meta_TMDB as tmdb
from sw_platform.config_base import load_config

SEARCH_URL = f"{tmdb.API_BASE}/search/multi"


@pytest.fixture()
def provider(config_base: Path, monkeypatch: pytest.MonkeyPatch) -> tmdb.TmdbProvider:
    cfg = {"tmdb": {"api_key": "k"}, "metadata": {"backoff_max_retries": 1, "backoff_base_ms": 50}}
    (config_base / "config.json").write_text(json.dumps(cfg), encoding="utf-8")
    monkeypatch.setattr(tmdb.time, "sleep", lambda _s: None)
    return tmdb.build(load_config)


@responses.activate
def test_search_keeps_only_titles(provider) -> None:
    responses.add(
        responses.GET,
        SEARCH_URL,
        json={"results": [
            {"id": 949, "media_type": "movie", "title": "Heat"},
            {"id": 1, "media_type": "person", "name": "Al Pacino"},
            {"id": 2, "media_type": "tv", "name": "Heat Wave"},
        ]},
    )
    results = provider.search_title("  Heat ")
    assert [r["id"] for r in results] == [949, 2]

    sent = responses.calls[0].request.url
    assert "api_key=k" in sent
    assert "query=Heat" in sent
    assert "include_adult=false" in sent


@responses.activate
def test_blank_query_makes_no_request(provider) -> None:
    assert provider.search_title("   ") == []
    assert len(responses.calls) == 0


@responses.activate
def test_responses_are_cached(provider) -> None:
    responses.add(responses.GET, SEARCH_URL, json={"results": []})
    provider.search_title("Heat")
    provider.search_title("Heat")
    assert len(responses.calls) == 1


@responses.activate
def test_server_error_is_retried(provider) -> None:
    responses.add(responses.GET, f"{tmdb.API_BASE}/movie/603", status=502)
    responses.add(responses.GET, f"{tmdb.API_BASE}/movie/603", json={"id": 603, "title": "The Matrix"})
    assert provider.get_details("movie", 603)["title"] == "The Matrix"
    assert len(responses.calls) == 2


@responses.activate
def test_rate_limit_exhausts_retry_budget(provider) -> None:
    responses.add(responses.GET, f"{tmdb.API_BASE}/tv/1", status=429, headers={"Retry-After": "1"})
    with pytest.raises(requests.exceptions.HTTPError):
        provider.get_details("tv", 1)
    assert len(responses.calls) == 2


@responses.activate
def test_not_found_is_not_retried(provider) -> None:
    responses.add(responses.GET, f"{tmdb.API_BASE}/movie/9", status=404, json={"status_code": 34})
    with pytest.raises(requests.exceptions.HTTPError):
        provider.get_details("movie", 9)
    assert len(responses.calls) == 1


@responses.activate
def test_details_without_id_is_a_lookup_error(provider) -> None:
    responses.add(responses.GET, f"{tmdb.API_BASE}/tv/5", json={"success": False})
    with pytest.raises(LookupError):
        provider.get_details("series", 5)


@responses.activate
def test_timeout_propagates_after_retries(provider) -> None:
    responses.add(responses.GET, SEARCH_URL, body=requests.exceptions.ConnectTimeout("slow"))
    with pytest.raises(requests.exceptions.Timeout):
        provider.search_title("Heat")
    assert len(responses.calls) == 2


def test_missing_api_key(config_base: Path) -> None:
    p = tmdb.build(load_config)
    with pytest.raises(RuntimeError):
        p.search_title("Heat")


def test_retry_after_parsing(provider) -> None:
    assert provider._seconds_from_retry_after("3") == 3.0
    assert provider._seconds_from_retry_after("") is None
    assert provider._seconds_from_retry_after("soon") is None
