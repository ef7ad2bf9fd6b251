from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import requests

from smartlists_backend.integrations.external_list import (
    CancellationToken,
    ExternalListConfigError,
    ExternalListError,
    keep_partial_or_raise,
    request_page,
    require_credential,
    url_matches_host,
)
from smartlists_backend.models.external_lists import FetchResult
from smartlists_backend.utils.env import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TMDB_MAX_CHART_PAGES = 500

_USER_LIST_RE = re.compile(r"themoviedb\.org/list/([0-9]+)", re.IGNORECASE)
_TRENDING_RE = re.compile(r"themoviedb\.org/trending/(movie|tv|all)/(day|week)", re.IGNORECASE)
_MOVIE_CHART_RE = re.compile(r"themoviedb\.org/movie/(popular|top-rated|now-playing|upcoming)", re.IGNORECASE)
_TV_CHART_RE = re.compile(r"themoviedb\.org/tv/(popular|top-rated|airing-today|on-the-air)", re.IGNORECASE)
_BARE_MEDIA_RE = re.compile(r"themoviedb\.org/(movie|tv)/?(?:[?#].*)?$", re.IGNORECASE)

# Website slugs use dashes, API chart paths use underscores.
_MOVIE_CHARTS = {
    "popular": "popular",
    "top-rated": "top_rated",
    "now-playing": "now_playing",
    "upcoming": "upcoming",
}
_TV_CHARTS = {
    "popular": "popular",
    "top-rated": "top_rated",
    "airing-today": "airing_today",
    "on-the-air": "on_the_air",
}


@dataclass(frozen=True)
class TmdbRoute:
    api_path: str
    is_user_list: bool


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit():
            return int(raw)
    return None


def resolve_tmdb_route(url: str) -> TmdbRoute | None:
    """
    Map a themoviedb.org website URL to an API path.

    Examples:
    - https://www.themoviedb.org/list/8136 -> /list/8136 (user list)
    - https://www.themoviedb.org/trending/movie/week -> /trending/movie/week
    - https://www.themoviedb.org/tv/top-rated -> /tv/top_rated
    - https://www.themoviedb.org/movie -> /movie/popular
    """

    raw = url or ""

    match = _USER_LIST_RE.search(raw)
    if match:
        return TmdbRoute(api_path=f"/list/{match.group(1)}", is_user_list=True)

    match = _TRENDING_RE.search(raw)
    if match:
        media_type = match.group(1).lower()
        window = match.group(2).lower()
        return TmdbRoute(api_path=f"/trending/{media_type}/{window}", is_user_list=False)

    match = _MOVIE_CHART_RE.search(raw)
    if match:
        return TmdbRoute(api_path=f"/movie/{_MOVIE_CHARTS[match.group(1).lower()]}", is_user_list=False)

    match = _TV_CHART_RE.search(raw)
    if match:
        return TmdbRoute(api_path=f"/tv/{_TV_CHARTS[match.group(1).lower()]}", is_user_list=False)

    match = _BARE_MEDIA_RE.search(raw)
    if match:
        return TmdbRoute(api_path=f"/{match.group(1).lower()}/popular", is_user_list=False)

    return None


def _add_page_items(items: list[Any], result: FetchResult) -> None:
    for item in items:
        tmdb_id = item.get("id") if isinstance(item, Mapping) else None
        result.add_ids(result.total_items, tmdb_id=tmdb_id)
        result.total_items += 1


class TmdbListAdapter:
    """
    Fetches TMDb user lists and chart/trending feeds.

    Only the TMDb id family is populated; TMDb list payloads carry no IMDb or
    TVDB ids.
    """

    name = "TMDb"

    def __init__(
        self,
        *,
        api_key: str | None,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_chart_pages: int = TMDB_MAX_CHART_PAGES,
    ) -> None:
        self._api_key = api_key
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._max_chart_pages = max_chart_pages

    def can_handle(self, url: str) -> bool:
        return url_matches_host(url, "themoviedb.org")

    def fetch(self, url: str, cancel_token: CancellationToken | None = None) -> FetchResult:
        api_key = require_credential(self._api_key, "TMDB API key is not configured. Set TMDB_API_KEY.")

        route = resolve_tmdb_route(url)
        if route is None:
            raise ExternalListConfigError(
                "Invalid TMDB URL. Supported formats: https://www.themoviedb.org/list/{id}, "
                "https://www.themoviedb.org/movie/popular, https://www.themoviedb.org/tv/top-rated, "
                "https://www.themoviedb.org/trending/movie/week, etc."
            )

        logger.info(f"Fetching TMDB list: {url} -> {route.api_path}")
        result = FetchResult()
        if route.is_user_list:
            self._fetch_user_list(route.api_path, api_key, url, result, cancel_token)
        else:
            self._fetch_chart(route.api_path, api_key, url, result, cancel_token)

        logger.info(f"Fetched {result.total_items} items from TMDB {url} (TMDB IDs: {len(result.tmdb_ids)})")
        return result

    def _request_json(self, api_path: str, api_key: str, page: int) -> dict[str, Any]:
        resp = request_page(
            self._session,
            f"{TMDB_API_BASE_URL}{api_path}",
            source="TMDB API",
            params={"api_key": api_key, "page": page},
            headers={"accept": "application/json"},
            timeout_seconds=self._timeout_seconds,
        )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ExternalListError(
                "TMDB returned non-JSON response.",
                status_code=resp.status_code,
                body_snippet=(resp.text or "")[:400],
            ) from exc

        if not isinstance(payload, dict):
            raise ExternalListError("TMDB returned unexpected JSON shape (not an object).")
        return payload

    def _fetch_user_list(
        self,
        api_path: str,
        api_key: str,
        url: str,
        result: FetchResult,
        cancel_token: CancellationToken | None,
    ) -> None:
        page = 1
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            try:
                payload = self._request_json(api_path, api_key, page)
            except ExternalListError as exc:
                keep_partial_or_raise(exc, result, source="TMDB", url=url)
                return

            items = payload.get("items")
            if not isinstance(items, list) or not items:
                return
            _add_page_items(items, result)

            # If pagination is not provided, treat as single page.
            total_pages = _as_int(payload.get("total_pages"))
            if total_pages is None or page >= total_pages:
                return
            page += 1

    def _fetch_chart(
        self,
        api_path: str,
        api_key: str,
        url: str,
        result: FetchResult,
        cancel_token: CancellationToken | None,
    ) -> None:
        for page in range(1, self._max_chart_pages + 1):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            try:
                payload = self._request_json(api_path, api_key, page)
            except ExternalListError as exc:
                keep_partial_or_raise(exc, result, source="TMDB", url=url)
                return

            results = payload.get("results")
            if not isinstance(results, list) or not results:
                return
            _add_page_items(results, result)

            total_pages = _as_int(payload.get("total_pages"))
            if total_pages is not None and page >= total_pages:
                return

        result.truncated_reason = f"stopped at the {self._max_chart_pages}-page cap"
        logger.warning(f"TMDB {api_path} hit the {self._max_chart_pages}-page cap; list may be truncated")
