from __future__ import annotations

import logging
import re
from urllib.parse import quote

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError

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

TRAKT_API_BASE_URL = "https://api.trakt.tv"
TRAKT_API_VERSION = "2"
TRAKT_PAGE_SIZE = 100
TRAKT_USER_AGENT = "SmartListsBackend/1.0"
TRAKT_PAGE_COUNT_HEADER = "X-Pagination-Page-Count"

_USER_LIST_RE = re.compile(r"trakt\.tv/users/([^/]+)/lists/([^/?#]+)", re.IGNORECASE)
_WATCHLIST_RE = re.compile(r"trakt\.tv/users/([^/]+)/watchlist", re.IGNORECASE)
_CHART_RE = re.compile(
    r"trakt\.tv/(movies|shows)/(trending|popular|watched|played|collected|anticipated|boxoffice)",
    re.IGNORECASE,
)


class TraktIds(BaseModel):
    trakt: int | None = None
    slug: str | None = None
    imdb: str | None = None
    tmdb: int | None = None
    tvdb: int | None = None


class TraktMedia(BaseModel):
    title: str | None = None
    year: int | None = None
    ids: TraktIds | None = None


class TraktListItem(BaseModel):
    """
    List and most chart endpoints nest the media under `movie`/`show`;
    popular charts return the media object itself with `ids` at the top.
    """

    movie: TraktMedia | None = None
    show: TraktMedia | None = None
    ids: TraktIds | None = None

    def resolve_ids(self) -> TraktIds | None:
        if self.movie is not None and self.movie.ids is not None:
            return self.movie.ids
        if self.show is not None and self.show.ids is not None:
            return self.show.ids
        return self.ids


_TRAKT_ITEMS_ADAPTER = TypeAdapter(list[TraktListItem])


def resolve_trakt_api_path(url: str) -> str | None:
    """
    Map a trakt.tv website URL to an API path.

    Examples:
    - https://trakt.tv/users/alice/lists/favs -> /users/alice/lists/favs/items
    - https://trakt.tv/users/alice/watchlist -> /users/alice/watchlist
    - https://trakt.tv/movies/watched -> /movies/watched/weekly
    """

    raw = url or ""

    match = _USER_LIST_RE.search(raw)
    if match:
        user = quote(match.group(1), safe="")
        list_slug = quote(match.group(2), safe="")
        return f"/users/{user}/lists/{list_slug}/items"

    match = _WATCHLIST_RE.search(raw)
    if match:
        return f"/users/{quote(match.group(1), safe='')}/watchlist"

    match = _CHART_RE.search(raw)
    if match:
        media_type = match.group(1).lower()
        chart = match.group(2).lower()
        if chart in {"trending", "popular", "anticipated"}:
            return f"/{media_type}/{chart}"
        if chart in {"watched", "played", "collected"}:
            return f"/{media_type}/{chart}/weekly"
        if chart == "boxoffice" and media_type == "movies":
            return "/movies/boxoffice"

    return None


def _parse_page_count(value: str | None) -> int | None:
    raw = (value or "").strip()
    return int(raw) if raw.isdigit() else None


def _parse_items_page(body: str) -> list[TraktListItem]:
    try:
        return _TRAKT_ITEMS_ADAPTER.validate_json(body)
    except ValidationError as exc:
        raise ExternalListError("Trakt returned a malformed page.", body_snippet=(body or "")[:400]) from exc


class TraktListAdapter:
    """
    Fetches Trakt user lists, watchlists and charts.

    Pagination follows the page-count response header when Trakt sends it and
    otherwise stops on the first short page.
    """

    name = "Trakt"

    def __init__(
        self,
        *,
        client_id: str | None,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        page_size: int = TRAKT_PAGE_SIZE,
    ) -> None:
        self._client_id = client_id
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._page_size = page_size

    def can_handle(self, url: str) -> bool:
        return url_matches_host(url, "trakt.tv")

    def fetch(self, url: str, cancel_token: CancellationToken | None = None) -> FetchResult:
        client_id = require_credential(self._client_id, "Trakt client ID is not configured. Set TRAKT_CLIENT_ID.")

        api_path = resolve_trakt_api_path(url)
        if api_path is None:
            raise ExternalListConfigError(
                "Invalid Trakt URL. Supported formats: https://trakt.tv/users/{user}/lists/{list}, "
                "https://trakt.tv/users/{user}/watchlist, "
                "https://trakt.tv/movies/trending, https://trakt.tv/shows/popular, etc."
            )

        logger.info(f"Fetching Trakt list: {url} -> {api_path}")
        headers = {
            "accept": "application/json",
            "trakt-api-version": TRAKT_API_VERSION,
            "trakt-api-key": client_id,
            "user-agent": TRAKT_USER_AGENT,
        }

        result = FetchResult()
        page = 1
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            try:
                resp = request_page(
                    self._session,
                    f"{TRAKT_API_BASE_URL}{api_path}",
                    source="Trakt API",
                    params={"page": page, "limit": self._page_size, "extended": "full"},
                    headers=headers,
                    timeout_seconds=self._timeout_seconds,
                )
                items = _parse_items_page(resp.text or "")
            except ExternalListError as exc:
                keep_partial_or_raise(exc, result, source="Trakt", url=url)
                break

            if not items:
                break

            for item in items:
                ids = item.resolve_ids()
                if ids is not None:
                    result.add_ids(result.total_items, imdb_id=ids.imdb, tmdb_id=ids.tmdb, tvdb_id=ids.tvdb)
                result.total_items += 1

            page_count = _parse_page_count(resp.headers.get(TRAKT_PAGE_COUNT_HEADER))
            if page_count is not None:
                if page >= page_count:
                    break
            elif len(items) < self._page_size:
                break
            page += 1

        counts = result.family_counts()
        logger.info(
            f"Fetched {result.total_items} items from Trakt {url} "
            f"(IMDb: {counts['imdb']}, TMDB: {counts['tmdb']}, TVDB: {counts['tvdb']})"
        )
        return result
