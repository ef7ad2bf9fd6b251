from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import requests

from smartlists_backend.integrations.external_list import (
    CancellationToken,
    ExternalListAdapter,
    FetchCancelledError,
)
from smartlists_backend.integrations.imdb.list_page_client import ImdbListPageAdapter
from smartlists_backend.integrations.mdblist.client import MdbListAdapter
from smartlists_backend.integrations.tmdb.client import TmdbListAdapter
from smartlists_backend.integrations.trakt.client import TraktListAdapter
from smartlists_backend.models.external_lists import FetchCache, FetchResult, normalize_list_url
from smartlists_backend.utils.env import ExternalListSettings

logger = logging.getLogger(__name__)

EXTERNAL_LIST_FIELD = "ExternalList"


def build_default_adapters(
    settings: ExternalListSettings,
    *,
    session: requests.Session | None = None,
) -> list[ExternalListAdapter]:
    """
    The registered adapters, in lookup order. The first adapter whose
    `can_handle` accepts a URL wins, so this order is part of the contract.
    """

    session = session or requests.Session()
    timeout = settings.timeout_seconds
    return [
        MdbListAdapter(api_key=settings.mdblist_api_key, session=session, timeout_seconds=timeout),
        ImdbListPageAdapter(session=session, timeout_seconds=timeout),
        TmdbListAdapter(api_key=settings.tmdb_api_key, session=session, timeout_seconds=timeout),
        TraktListAdapter(client_id=settings.trakt_client_id, session=session, timeout_seconds=timeout),
    ]


def _dedupe_urls(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if not isinstance(url, str) or not url.strip():
            continue
        key = normalize_list_url(url)
        if key in seen:
            continue
        seen.add(key)
        ordered.append(url.strip())
    return ordered


def _first_present(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def collect_external_list_urls(
    expression_sets: Iterable[Mapping[str, Any]] | None,
    *,
    field_name: str = EXTERNAL_LIST_FIELD,
) -> list[str]:
    """
    Collect external list URLs referenced by a smart list's rule sets.

    Accepts both snake_case and the stored PascalCase keys
    (`expressions`/`Expressions`, `member_name`/`MemberName`,
    `target_value`/`TargetValue`). Order is first-seen; duplicates are dropped
    case-insensitively.
    """

    urls: list[str] = []
    for expression_set in expression_sets or []:
        if not isinstance(expression_set, Mapping):
            continue
        expressions = _first_present(expression_set, "expressions", "Expressions")
        if not isinstance(expressions, list):
            continue
        for expression in expressions:
            if not isinstance(expression, Mapping):
                continue
            member = _first_present(expression, "member_name", "MemberName")
            if not isinstance(member, str) or member.strip().lower() != field_name.lower():
                continue
            target = _first_present(expression, "target_value", "TargetValue")
            if isinstance(target, str) and target.strip():
                urls.append(target)
    return _dedupe_urls(urls)


class ExternalListAggregator:
    """
    Resolves external list URLs to adapters and fills a batch `FetchCache`.

    URLs are processed one at a time. A failing URL is recorded as a warning
    plus an empty result; only cancellation escapes `pre_fetch`.
    """

    def __init__(self, adapters: Sequence[ExternalListAdapter]) -> None:
        self._adapters = list(adapters)

    @classmethod
    def from_settings(
        cls,
        settings: ExternalListSettings,
        *,
        session: requests.Session | None = None,
    ) -> "ExternalListAggregator":
        return cls(build_default_adapters(settings, session=session))

    @property
    def adapters(self) -> list[ExternalListAdapter]:
        return list(self._adapters)

    def resolve_adapter(self, url: str) -> ExternalListAdapter | None:
        for adapter in self._adapters:
            if adapter.can_handle(url):
                return adapter
        return None

    def pre_fetch(
        self,
        urls: Iterable[str],
        cache: FetchCache,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        url_list = _dedupe_urls(urls)
        if not url_list:
            return

        logger.info(f"Pre-fetching {len(url_list)} external list(s)")
        for url in url_list:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            # Already fetched earlier in this batch.
            if url in cache:
                logger.debug(f"External list already cached: {url}")
                continue

            adapter = self.resolve_adapter(url)
            if adapter is None:
                message = f"No external list provider found for URL: {url}"
                logger.warning(message)
                cache.add_warning(message)
                cache.store(url, FetchResult())
                continue

            try:
                result = adapter.fetch(url, cancel_token)
            except FetchCancelledError:
                logger.debug(f"External list fetch cancelled for {url}")
                raise
            except Exception as exc:  # noqa: BLE001
                message = f"Failed to fetch external list: {url} ({exc})"
                logger.warning(f"{message}. Treating as empty list.")
                cache.add_warning(message)
                cache.store(url, FetchResult())
                continue

            cache.store(url, result)
            if result.truncated_reason:
                message = f"External list partially fetched: {url} ({result.truncated_reason})"
                logger.warning(message)
                cache.add_warning(message)
            logger.debug(f"Cached external list {url}: {result.total_items} items via {adapter.name}")
