"""
IMDb public list/chart page client.

IMDb serves a truncated page to non-browser clients, so requests carry a
desktop browser user agent. Title ids are pulled straight out of the raw HTML
in document order; the page is assumed to render the whole list (or IMDb's own
cap) in a single response.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit, urlunsplit

import requests

from smartlists_backend.integrations.external_list import (
    CancellationToken,
    ExternalListConfigError,
    request_page,
    url_matches_host,
)
from smartlists_backend.models.external_lists import FetchResult
from smartlists_backend.utils.env import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

IMDB_BROWSER_HEADERS = {
    "user-agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "accept-language": "en-US,en;q=0.9",
}

# Examples:
# - https://www.imdb.com/list/ls123456789/
# - https://www.imdb.com/chart/top/
# - https://www.imdb.com/chart/toptv/
_IMDB_LIST_URL_RE = re.compile(r"imdb\.com/(list/ls\d+|chart/\w+)", re.IGNORECASE)
_IMDB_TITLE_ANCHOR_RE = re.compile(r"/title/(tt\d{7,})/")


def extract_imdb_title_ids(html: str) -> list[str]:
    """
    Title ids in first-seen order; repeated anchors for the same title are dropped.
    """

    seen: set[str] = set()
    ordered: list[str] = []
    for match in _IMDB_TITLE_ANCHOR_RE.finditer(html or ""):
        imdb_id = match.group(1)
        if imdb_id in seen:
            continue
        seen.add(imdb_id)
        ordered.append(imdb_id)
    return ordered


def _normalize_list_page_url(url: str) -> str:
    # Trailing slash goes on the path; the query string is kept, the fragment dropped.
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/") + "/"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


class ImdbListPageAdapter:
    name = "IMDb"

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds

    def can_handle(self, url: str) -> bool:
        return url_matches_host(url, "imdb.com")

    def fetch(self, url: str, cancel_token: CancellationToken | None = None) -> FetchResult:
        if not _IMDB_LIST_URL_RE.search(url or ""):
            raise ExternalListConfigError(
                "Invalid IMDb URL. Expected https://www.imdb.com/list/ls123456789/ or https://www.imdb.com/chart/top/"
            )

        list_url = _normalize_list_page_url(url)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        logger.info(f"Fetching IMDb list: {list_url}")
        # A failed page load is fatal here: an empty id set would look like an empty list.
        resp = request_page(
            self._session,
            list_url,
            source="IMDb",
            headers=IMDB_BROWSER_HEADERS,
            timeout_seconds=self._timeout_seconds,
        )

        result = FetchResult()
        for position, imdb_id in enumerate(extract_imdb_title_ids(resp.text or "")):
            result.add_ids(position, imdb_id=imdb_id)
        result.total_items = len(result.imdb_ids)

        logger.info(f"Fetched {result.total_items} items from IMDb list {list_url}")
        return result
