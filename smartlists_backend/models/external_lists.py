from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

# Identifier families carried by every fetch result.
ID_FAMILY_IMDB = "imdb"  # e.g. "tt1234567"
ID_FAMILY_TMDB = "tmdb"  # e.g. "917496"
ID_FAMILY_TVDB = "tvdb"  # e.g. "421968"

ID_FAMILIES = (ID_FAMILY_IMDB, ID_FAMILY_TMDB, ID_FAMILY_TVDB)


def normalize_imdb_id(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip().lower()
    return stripped or None


def normalize_numeric_id(value: Any) -> str | None:
    """
    Normalize a numeric provider id (TMDb, TVDB) to its canonical string form.

    Accepts positive ints and digit-only strings; anything else yields None.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value) if value > 0 else None
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit() and int(raw) > 0:
            return str(int(raw))
    return None


@dataclass
class FetchResult:
    """
    Normalized output of one external list fetch.

    Each family index maps a provider id to the zero-based position of its first
    occurrence in the source list. `total_items` counts every item the adapter
    observed, including items that contributed no id.

    `truncated_reason` is set when the fetch stopped before the end of the list.
    """

    imdb_ids: dict[str, int] = field(default_factory=dict)
    tmdb_ids: dict[str, int] = field(default_factory=dict)
    tvdb_ids: dict[str, int] = field(default_factory=dict)
    total_items: int = 0
    truncated_reason: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.total_items == 0 and not (self.imdb_ids or self.tmdb_ids or self.tvdb_ids)

    def add_ids(
        self,
        position: int,
        *,
        imdb_id: Any = None,
        tmdb_id: Any = None,
        tvdb_id: Any = None,
    ) -> None:
        # First occurrence wins; later duplicates never move an id down the list.
        imdb = normalize_imdb_id(imdb_id)
        if imdb:
            self.imdb_ids.setdefault(imdb, position)
        tmdb = normalize_numeric_id(tmdb_id)
        if tmdb:
            self.tmdb_ids.setdefault(tmdb, position)
        tvdb = normalize_numeric_id(tvdb_id)
        if tvdb:
            self.tvdb_ids.setdefault(tvdb, position)

    def position_of(
        self,
        *,
        imdb_id: Any = None,
        tmdb_id: Any = None,
        tvdb_id: Any = None,
    ) -> int | None:
        """
        Return the lowest list position matched by any of the given ids, or None.
        """

        candidates: list[int] = []
        imdb = normalize_imdb_id(imdb_id)
        if imdb and imdb in self.imdb_ids:
            candidates.append(self.imdb_ids[imdb])
        tmdb = normalize_numeric_id(tmdb_id)
        if tmdb and tmdb in self.tmdb_ids:
            candidates.append(self.tmdb_ids[tmdb])
        tvdb = normalize_numeric_id(tvdb_id)
        if tvdb and tvdb in self.tvdb_ids:
            candidates.append(self.tvdb_ids[tvdb])
        return min(candidates) if candidates else None

    def contains(self, *, imdb_id: Any = None, tmdb_id: Any = None, tvdb_id: Any = None) -> bool:
        return self.position_of(imdb_id=imdb_id, tmdb_id=tmdb_id, tvdb_id=tvdb_id) is not None

    def family_counts(self) -> dict[str, int]:
        return {
            ID_FAMILY_IMDB: len(self.imdb_ids),
            ID_FAMILY_TMDB: len(self.tmdb_ids),
            ID_FAMILY_TVDB: len(self.tvdb_ids),
        }


def normalize_list_url(url: str) -> str:
    return str(url).strip().lower()


@dataclass
class FetchCache:
    """
    Per-batch cache of external list results keyed by URL (case-insensitive).

    Written once by the aggregator, then read synchronously during rule
    evaluation. `warnings` holds one message per URL that could not be resolved or
    was only partly fetched.
    """

    warnings: list[str] = field(default_factory=list)
    _results: dict[str, FetchResult] = field(default_factory=dict, repr=False)

    def __contains__(self, url: object) -> bool:
        if not isinstance(url, str):
            return False
        return normalize_list_url(url) in self._results

    def __len__(self) -> int:
        return len(self._results)

    def get(self, url: str) -> FetchResult | None:
        return self._results.get(normalize_list_url(url))

    def store(self, url: str, result: FetchResult) -> None:
        self._results[normalize_list_url(url)] = result

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def urls(self) -> list[str]:
        return list(self._results)

    def position_of(
        self,
        urls: Iterable[str],
        *,
        imdb_id: Any = None,
        tmdb_id: Any = None,
        tvdb_id: Any = None,
    ) -> int | None:
        """
        Lowest position of an item across several cached lists.

        URLs that were never fetched in this batch are skipped.
        """

        best: int | None = None
        for url in urls:
            result = self.get(url)
            if result is None:
                continue
            position = result.position_of(imdb_id=imdb_id, tmdb_id=tmdb_id, tvdb_id=tvdb_id)
            if position is not None and (best is None or position < best):
                best = position
        return best
