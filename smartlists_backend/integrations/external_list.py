"""
Shared plumbing for external list adapters.

Every adapter implements `ExternalListAdapter`: a pure `can_handle(url)` host
predicate plus a blocking `fetch(url, cancel_token)` that returns a
`FetchResult`. Adapters raise only for configuration problems or when a source
produced nothing at all; partial pages are kept.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Protocol
from urllib.parse import urlparse

import requests

from smartlists_backend.models.external_lists import FetchResult

logger = logging.getLogger(__name__)


class ExternalListError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, body_snippet: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_snippet = body_snippet


class ExternalListConfigError(ExternalListError):
    """Missing credential, or a handled URL that maps to no request target."""


class FetchCancelledError(Exception):
    """Raised when a batch is cancelled; never downgraded to a warning."""


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelledError("External list fetch cancelled.")


class ExternalListAdapter(Protocol):
    """
    Port used by the aggregator to fetch one external list.

    Implementations must not raise for ordinary network or parse failures once
    at least one item was accumulated.
    """

    name: str

    def can_handle(self, url: str) -> bool: ...

    def fetch(self, url: str, cancel_token: CancellationToken | None = None) -> FetchResult: ...


def url_matches_host(url: str, domain: str) -> bool:
    """
    True when `url` is an absolute http(s) URL on `domain` or any subdomain of it.
    """

    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if (parsed.scheme or "").lower() not in {"http", "https"}:
        return False
    host = (parsed.hostname or "").lower()
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


def require_credential(value: str | None, message: str) -> str:
    resolved = (value or "").strip()
    if not resolved:
        raise ExternalListConfigError(message)
    return resolved


def request_page(
    session: requests.Session,
    url: str,
    *,
    source: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    timeout_seconds: float,
) -> requests.Response:
    try:
        resp = session.get(url, params=params, headers=headers, timeout=timeout_seconds)
    except requests.RequestException as exc:
        raise ExternalListError(f"{source} request failed: {exc}") from exc

    if not 200 <= resp.status_code < 300:
        raise ExternalListError(
            f"{source} returned HTTP {resp.status_code}.",
            status_code=resp.status_code,
            body_snippet=(resp.text or "")[:400],
        )
    return resp


def keep_partial_or_raise(exc: ExternalListError, result: FetchResult, *, source: str, url: str) -> None:
    """
    Mid-pagination failure policy: re-raise when nothing was accumulated yet,
    otherwise mark the result truncated and let the caller stop with what it has.
    """

    if result.total_items == 0:
        raise exc
    result.truncated_reason = str(exc)
    logger.warning(f"{source} stopped early for {url} after {result.total_items} items: {exc}")
