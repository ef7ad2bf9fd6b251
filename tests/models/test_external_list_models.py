from __future__ import annotations

from smartlists_backend.models.external_lists import (
    FetchCache,
    FetchResult,
    normalize_imdb_id,
    normalize_numeric_id,
)


def test_add_ids_first_seen_position_wins() -> None:
    result = FetchResult()
    result.add_ids(0, imdb_id="tt0000001", tmdb_id=10)
    result.add_ids(1, imdb_id="tt0000002", tvdb_id="20")
    result.add_ids(2, imdb_id="tt0000001", tmdb_id=10, tvdb_id=20)

    assert result.imdb_ids == {"tt0000001": 0, "tt0000002": 1}
    assert result.tmdb_ids == {"10": 0}
    assert result.tvdb_ids == {"20": 1}


def test_add_ids_skips_unusable_values() -> None:
    result = FetchResult()
    result.add_ids(0, imdb_id="  ", tmdb_id=0, tvdb_id="abc")
    result.add_ids(1, imdb_id=None, tmdb_id=True, tvdb_id=-5)

    assert result.imdb_ids == {}
    assert result.tmdb_ids == {}
    assert result.tvdb_ids == {}


def test_normalizers() -> None:
    assert normalize_imdb_id(" TT0944947 ") == "tt0944947"
    assert normalize_imdb_id(123) is None
    assert normalize_numeric_id(917496) == "917496"
    assert normalize_numeric_id("007") == "7"
    assert normalize_numeric_id("0") is None
    assert normalize_numeric_id(1.5) is None


def test_position_of_returns_lowest_match_across_families() -> None:
    result = FetchResult()
    result.add_ids(0, tmdb_id=100)
    result.add_ids(1, imdb_id="tt0000002", tvdb_id=200)

    assert result.position_of(imdb_id="tt0000002", tmdb_id=100) == 0
    assert result.position_of(tvdb_id="200") == 1
    assert result.position_of(imdb_id="tt9999999") is None
    assert result.contains(tmdb_id="100") is True
    assert result.contains() is False


def test_empty_result_is_empty() -> None:
    assert FetchResult().is_empty is True

    counted = FetchResult(total_items=3)
    assert counted.is_empty is False
    assert counted.family_counts() == {"imdb": 0, "tmdb": 0, "tvdb": 0}


def test_cache_keys_are_case_insensitive() -> None:
    cache = FetchCache()
    result = FetchResult(total_items=1)
    cache.store("https://Trakt.tv/Users/Alice/Watchlist", result)

    assert "https://trakt.tv/users/alice/watchlist" in cache
    assert cache.get("HTTPS://TRAKT.TV/USERS/ALICE/WATCHLIST") is result
    assert len(cache) == 1
    assert 42 not in cache


def test_cache_position_of_spans_lists_and_skips_unfetched() -> None:
    first = FetchResult()
    first.add_ids(5, imdb_id="tt0000001")
    second = FetchResult()
    second.add_ids(2, tmdb_id=77)

    cache = FetchCache()
    cache.store("https://mdblist.com/lists/a/b", first)
    cache.store("https://www.themoviedb.org/list/1", second)

    urls = ["https://mdblist.com/lists/a/b", "https://www.themoviedb.org/list/1", "https://trakt.tv/movies/popular"]
    assert cache.position_of(urls, imdb_id="tt0000001", tmdb_id=77) == 2
    assert cache.position_of(urls, imdb_id="tt0000001") == 5
    assert cache.position_of(urls, tvdb_id=1) is None


def test_cache_warnings_keep_insertion_order() -> None:
    cache = FetchCache()
    cache.add_warning("first")
    cache.add_warning("second")
    assert cache.warnings == ["first", "second"]
