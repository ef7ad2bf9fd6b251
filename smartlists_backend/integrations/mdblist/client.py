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

MDBLIST_API_BASE_URL = "https://api.mdblist.com"
MDBLIST_PAGE_SIZE = 1000

_MDBLIST_URL_RE = re.compile(r"mdblist\.com/lists/([^/]+)/([^/?#]+)", re.IGNORECASE)


class MdbListItemIds(BaseModel):
    imdb: str | None = None
    tmdb: int | None = None
    tvdb: int | None = None
    mdblist: str | None = None


class MdbListItem(BaseModel):
    id: int | None = None
    rank: int | None = None
    title: str | None = None
    imdb_id: str | None = None
    tvdb_id: int | None = None
    mediatype: str | None = None
    release_year: int | None = None
    ids: MdbListItemIds | None = None


class MdbListResponse(BaseModel):
    """Newer API shape: items split into `movies` and `shows` arrays."""

    movies: list[MdbListItem] | None = None
    shows: list[MdbListItem] | None = None


_MDBLIST_ITEMS_ADAPTER = TypeAdapter(list[MdbListItem])


def parse_mdblist_url(url: str) -> tuple[str, str]:
    """
    Parse `https://mdblist.com/lists/{username}/{listname}` into its two segments.
    """

    match = _MDBLIST_URL_RE.search(url or "")
    if not match:
        raise ExternalListConfigError(
            f"Unable to parse MDBList URL: {url!r}. Expected https://mdblist.com/lists/{{username}}/{{listname}}"
        )
    return match.group(1), match.group(2)


def _parse_items_page(body: str) -> list[MdbListItem]:
    # Wrapper object first, bare array as the fallback.
    try:
        wrapper = MdbListResponse.model_validate_json(body)
    except ValidationError:
        try:
            return _MDBLIST_ITEMS_ADAPTER.validate_json(body)
        except ValidationError as exc:
            raise ExternalListError(
                "MDBList returned a malformed page.",
                body_snippet=(body or "")[:400],
            ) from exc
    # An object carrying neither array (e.g. {"error": ...}) is not a list page.
    if wrapper.movies is None and wrapper.shows is None:
        raise ExternalListError(
            "MDBList returned a malformed page.",
            body_snippet=(body or "")[:400],
        )
    return [*(wrapper.movies or []), *(wrapper.shows or [])]


def _add_item_ids(item: MdbListItem, result: FetchResult) -> None:
    ids = item.ids
    # Every item takes a position, even one without usable ids.
    position = result.total_items
    result.add_ids(
        position,
        imdb_id=item.imdb_id or (ids.imdb if ids else None),
        tmdb_id=ids.tmdb if ids else None,
        tvdb_id=item.tvdb_id if item.tvdb_id is not None else (ids.tvdb if ids else None),
    )
    result.total_items += 1


class MdbListAdapter:
    """
    Fetches list items from the MDBList API using offset pagination.
    """

    name = "MDBList"

    def __init__(
        self,
        *,
        api_key: str | None,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        page_size: int = MDBLIST_PAGE_SIZE,
    ) -> None:
        self._api_key = api_key
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._page_size = page_size

    def can_handle(self, url: str) -> bool:
        return url_matches_host(url, "mdblist.com")

    def fetch(self, url: str, cancel_token: CancellationToken | None = None) -> FetchResult:
        api_key = require_credential(
            self._api_key,
            "MDBList API key is not configured. Set MDBLIST_API_KEY.",
        )
        username, listname = parse_mdblist_url(url)
        logger.info(f"Fetching external list from MDBList: {username}/{listname}")

        api_url = f"{MDBLIST_API_BASE_URL}/lists/{quote(username, safe='')}/{quote(listname, safe='')}/items"
        result = FetchResult()
        offset = 0
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            try:
                resp = request_page(
                    self._session,
                    api_url,
                    source="MDBList API",
                    params={"apikey": api_key, "limit": self._page_size, "offset": offset},
                    headers={"accept": "application/json"},
                    timeout_seconds=self._timeout_seconds,
                )
                items = _parse_items_page(resp.text or "")
            except ExternalListError as exc:
                keep_partial_or_raise(exc, result, source="MDBList", url=url)
                break

            for item in items:
                _add_item_ids(item, result)

            logger.debug(f"MDBList {username}/{listname}: {len(items)} items at offset {offset}")
            if len(items) < self._page_size:
                break
            offset += self._page_size

        counts = result.family_counts()
        logger.info(
            f"Fetched {result.total_items} items from MDBList {username}/{listname} "
            f"(IMDb: {counts['imdb']}, TMDB: {counts['tmdb']}, TVDB: {counts['tvdb']})"
        )
        return result
