from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripts import prefetch_external_lists as mod
from smartlists_backend.integrations.external_list import FetchCancelledError
from smartlists_backend.models.external_lists import FetchCache, FetchResult


def test_format_summary_lists_counts_and_warnings() -> None:
    cache = FetchCache()
    result = FetchResult()
    result.add_ids(0, imdb_id="tt0000001", tmdb_id=1)
    result.total_items = 2
    cache.store("https://trakt.tv/movies/trending", result)
    cache.add_warning("Failed to fetch external list: https://mdblist.com/x (boom)")

    lines = mod.format_summary(["https://trakt.tv/movies/trending", "https://www.imdb.com/chart/top/"], cache)

    assert lines == [
        "https://trakt.tv/movies/trending: items=2 imdb=1 tmdb=1 tvdb=0",
        "https://www.imdb.com/chart/top/: not fetched",
        "WARNING: Failed to fetch external list: https://mdblist.com/x (boom)",
    ]


class _FakeAggregator:
    def __init__(self, *, cancel: bool = False) -> None:
        self.cancel = cancel
        self.calls: list[list[str]] = []
        self.factory_kwargs: dict[str, object] = {}

    def pre_fetch(self, urls, cache, cancel_token=None) -> None:  # noqa: ANN001
        self.calls.append(list(urls))
        for url in urls:
            cache.store(url, FetchResult(total_items=1))
            if self.cancel:
                raise FetchCancelledError("cancelled")


def _patch_aggregator(monkeypatch: pytest.MonkeyPatch, fake: _FakeAggregator) -> None:
    def _from_settings(cls, settings, **kwargs):  # noqa: ANN001, ANN003, ANN202
        fake.factory_kwargs.update(kwargs)
        return fake

    monkeypatch.setattr(mod.ExternalListAggregator, "from_settings", classmethod(_from_settings))
    monkeypatch.setattr(mod.ExternalListSettings, "from_env", classmethod(lambda cls, **kw: cls()))


def test_main_merges_cli_urls_and_rule_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    fake = _FakeAggregator()
    _patch_aggregator(monkeypatch, fake)
    rules = tmp_path / "rules.json"
    rules.write_text(
        json.dumps(
            {"ExpressionSets": [{"Expressions": [{"MemberName": "ExternalList", "TargetValue": "https://trakt.tv/shows/popular"}]}]}
        ),
        encoding="utf-8",
    )

    exit_code = mod.main(["https://www.imdb.com/chart/top/", "--rules-json", str(rules)])

    assert exit_code == 0
    assert fake.calls == [["https://www.imdb.com/chart/top/", "https://trakt.tv/shows/popular"]]
    out = capsys.readouterr().out
    assert "https://trakt.tv/shows/popular: items=1" in out


def test_main_returns_130_when_cancelled(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_aggregator(monkeypatch, _FakeAggregator(cancel=True))
    assert mod.main(["https://trakt.tv/movies/trending"]) == 130


def test_main_without_urls_exits() -> None:
    with pytest.raises(SystemExit):
        mod.main([])


class _TrackingSession:
    instances: list["_TrackingSession"] = []

    def __init__(self) -> None:
        self.closed = False
        _TrackingSession.instances.append(self)

    def __enter__(self) -> "_TrackingSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True


@pytest.mark.parametrize("cancel", [False, True])
def test_main_shares_one_session_and_closes_it(monkeypatch: pytest.MonkeyPatch, cancel: bool) -> None:
    fake = _FakeAggregator(cancel=cancel)
    _patch_aggregator(monkeypatch, fake)
    _TrackingSession.instances = []
    monkeypatch.setattr(mod.requests, "Session", _TrackingSession)

    mod.main(["https://trakt.tv/movies/trending"])

    assert len(_TrackingSession.instances) == 1
    session = _TrackingSession.instances[0]
    assert fake.factory_kwargs == {"session": session}
    assert session.closed is True
