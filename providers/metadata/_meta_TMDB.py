# providers/metadata/_meta_TMDB.py
# ShareWatch - TMDb catalog lookups (search + details) used to enrich imported entries
# Copyright (c) 2025-2026 ShareWatch contributors
from __future__ import annotations

import hashlib
import random
import time
from email.utils import parsedate_to_datetime
from typing import Any, Callable

import requests

from _logging import log as _root_log

log = _root_log.child("META")

API_BASE = "https://api.themoviedb.org/3"
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


class _Retry(Exception):
    def __init__(self, wait_s: float | None = None) -> None:
        super().__init__()
        self.wait_s = wait_s


class TmdbProvider:
    """
    Catalog client for the importer: /search/multi and /{movie|tv}/{id}.

    Responses are cached in-process for ``metadata.ttl_hours``. Rate limits (429),
    server errors and network timeouts are retried with exponential backoff and
    jitter up to ``metadata.backoff_max_retries`` times; any other HTTP error is
    raised to the caller straight away.
    """

    UA = "ShareWatch/1.0"

    def __init__(self, load_cfg: Callable[[], dict[str, Any]]) -> None:
        self.load_cfg = load_cfg
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.UA, "Accept": "application/json"})
        self._cache: dict[str, tuple[float, Any]] = {}

    # config
    def _md(self) -> dict[str, Any]:
        return (self.load_cfg() or {}).get("metadata") or {}

    def _apikey(self) -> str:
        key = str(((self.load_cfg() or {}).get("tmdb") or {}).get("api_key") or "").strip()
        if not key:
            raise RuntimeError("TMDb API key is missing")
        return key

    def _language(self) -> str:
        return str(self._md().get("locale") or "en-US")

    def _timeout(self) -> float:
        try:
            return max(0.5, float(self._md().get("timeout", 10.0)))
        except (TypeError, ValueError):
            return 10.0

    def _ttl_seconds(self) -> int:
        try:
            hours = int(self._md().get("ttl_hours", 6))
        except (TypeError, ValueError):
            hours = 6
        return max(1, hours) * 3600

    def _backoff_params(self) -> tuple[int, float, float]:
        md = self._md()
        retries = max(0, int(md.get("backoff_max_retries", 2)))
        base_s = max(0.05, int(md.get("backoff_base_ms", 500)) / 1000.0)
        cap_s = max(0.1, int(md.get("backoff_max_ms", 4000)) / 1000.0)
        return retries, base_s, cap_s

    @staticmethod
    def _backoff(attempt: int, base_s: float, cap_s: float) -> float:
        return min(cap_s, base_s * (2**attempt)) + random.uniform(0.0, 0.25)

    @staticmethod
    def _seconds_from_retry_after(header: str | None) -> float | None:
        value = (header or "").strip()
        if not value:
            return None
        if value.isdigit():
            return float(value)
        try:
            return max(0.0, parsedate_to_datetime(value).timestamp() - time.time())
        except (TypeError, ValueError):
            return None

    # http
    def _fetch_once(self, url: str, params: dict[str, Any]) -> Any:
        try:
            r = self.session.get(url, params=params, timeout=self._timeout())
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            raise _Retry() from e
        if r.status_code in RETRY_STATUSES:
            wait = self._seconds_from_retry_after(r.headers.get("Retry-After")) if r.status_code == 429 else None
            raise _Retry(wait) from requests.exceptions.HTTPError(f"{r.status_code} from TMDb", response=r)
        r.raise_for_status()
        return r.json()

    def _get(self, url: str, params: dict[str, Any] | None = None) -> Any:
        q = {**(params or {}), "api_key": self._apikey()}
        key = hashlib.sha1((url + "?" + "&".join(f"{k}={q[k]}" for k in sorted(q))).encode("utf-8")).hexdigest()
        hit = self._cache.get(key)
        if hit and (time.time() - hit[0]) < self._ttl_seconds():
            return hit[1]

        retries, base_s, cap_s = self._backoff_params()
        attempt = 0
        while True:
            try:
                data = self._fetch_once(url, q)
            except _Retry as rt:
                if attempt >= retries:
                    log(f"TMDb request gave up after {attempt + 1} attempt(s) at {url}", level="WARN")
                    raise rt.__cause__ from None
                time.sleep(rt.wait_s if rt.wait_s is not None else self._backoff(attempt, base_s, cap_s))
                attempt += 1
                continue
            except requests.exceptions.HTTPError as e:
                status = getattr(e.response, "status_code", None)
                log(f"TMDb request failed ({status or 'n/a'}) at {url}", level="INFO" if status == 404 else "WARN")
                raise
            self._cache[key] = (time.time(), data)
            return data

    # catalog api
    def search_title(self, query: str) -> list[dict[str, Any]]:
        """Multi-search; people and other non-title results are dropped."""
        query = (query or "").strip()
        if not query:
            return []
        data = self._get(
            f"{API_BASE}/search/multi",
            {"query": query, "include_adult": "false", "language": self._language()},
        )
        results = (data or {}).get("results") or []
        return [r for r in results if isinstance(r, dict) and r.get("media_type") in ("movie", "tv")]

    def get_details(self, media_type: str, tmdb_id: int | str) -> dict[str, Any]:
        kind = "tv" if str(media_type).lower() in ("tv", "show", "series") else "movie"
        data = self._get(f"{API_BASE}/{kind}/{tmdb_id}", {"language": self._language()})
        if not isinstance(data, dict) or not data.get("id"):
            raise LookupError(f"TMDb returned no {kind} for id {tmdb_id}")
        return data


def build(load_cfg: Callable[[], dict[str, Any]]) -> TmdbProvider:
    return TmdbProvider(load_cfg)
