from __future__ import annotations

from dataclasses import dataclass

import pytest

from smartlists_backend.integrations.external_list import (
    CancellationToken,
    ExternalListConfigError,
    ExternalListError,
    FetchCancelledError,
)
from smartlists_backend.integrations.imdb.list_page_client import ImdbListPageAdapter, extract_imdb_title_ids

SAMPLE_LIST_HTML = """
<html><body>
<ul class="ipc-metadata-list">
  <li><a href="/title/tt1353056/?ref_=ls_t_1"><img alt="poster"></a>
      <a href="/title/tt1353056/?ref_=ls_t_1"><h3>1. RuPaul's Drag Race</h3></a></li>
  <li><a href="/title/tt11363282/?ref_=ls_t_2"><h3>2. The Real Housewives of Salt Lake City</h3></a></li>
  <li><a href="/title/tt0944947/?ref_=ls_t_3"><h3>3. Game of Thrones</h3></a></li>
</ul>
<a href="/name/nm0000148/">not a title</a>
<a href="/title/tt123/">too short</a>
<div class="recently-viewed"><a href="/title/tt1353056/">RuPaul's Drag Race</a></div>
</body></html>
"""


@dataclass
class _FakeResponse:
    status_code: int
    text: str


class _FakeSession:
    def __init__(self, url_to_response: dict[str, _FakeResponse]) -> None:
        self._url_to_response = url_to_response
        self.calls: list[str] = []
        self.headers: list[dict[str, str]] = []

    def get(self, url: str, *args, headers=None, **kwargs) -> _FakeResponse:  # noqa: ANN001, ANN002, ANN003
        self.calls.append(url)
        self.headers.append(dict(headers or {}))
        return self._url_to_response.get(url, _FakeResponse(status_code=404, text=""))


def test_extract_imdb_title_ids_keeps_first_seen_order() -> None:
    assert extract_imdb_title_ids(SAMPLE_LIST_HTML) == ["tt1353056", "tt11363282", "tt0944947"]
    assert extract_imdb_title_ids("") == []


def test_can_handle_imdb_hosts() -> None:
    adapter = ImdbListPageAdapter(session=object())
    assert adapter.can_handle("https://www.imdb.com/list/ls123456789/") is True
    assert adapter.can_handle("https://m.IMDB.com/chart/top") is True
    assert adapter.can_handle("https://imdb.com.evil.example/list/ls1/") is False
    assert adapter.can_handle("https://www.themoviedb.org/list/1") is False


def test_fetch_duplicate_anchor_keeps_first_position() -> None:
    session = _FakeSession({"https://www.imdb.com/list/ls123456789/": _FakeResponse(200, SAMPLE_LIST_HTML)})
    result = ImdbListPageAdapter(session=session).fetch("https://www.imdb.com/list/ls123456789")

    assert result.imdb_ids == {"tt1353056": 0, "tt11363282": 1, "tt0944947": 2}
    assert result.total_items == 3
    assert result.tmdb_ids == {}
    assert result.tvdb_ids == {}
    assert session.calls == ["https://www.imdb.com/list/ls123456789/"]


def test_fetch_sends_browser_headers() -> None:
    session = _FakeSession({"https://www.imdb.com/chart/top/": _FakeResponse(200, SAMPLE_LIST_HTML)})
    ImdbListPageAdapter(session=session).fetch("https://www.imdb.com/chart/top/")

    sent = session.headers[0]
    assert sent["user-agent"].startswith("Mozilla/5.0")
    assert sent["accept-language"].startswith("en-US")


def test_fetch_non_success_status_is_fatal() -> None:
    session = _FakeSession({})
    with pytest.raises(ExternalListError) as excinfo:
        ImdbListPageAdapter(session=session).fetch("https://www.imdb.com/list/ls999/")
    assert excinfo.value.status_code == 404


def test_fetch_rejects_non_list_paths() -> None:
    session = _FakeSession({})
    with pytest.raises(ExternalListConfigError):
        ImdbListPageAdapter(session=session).fetch("https://www.imdb.com/title/tt0944947/")
    assert session.calls == []


def test_fetch_checks_cancellation_before_request() -> None:
    session = _FakeSession({})
    token = CancellationToken()
    token.cancel()
    with pytest.raises(FetchCancelledError):
        ImdbListPageAdapter(session=session).fetch("https://www.imdb.com/list/ls1/", token)
    assert session.calls == []


def test_fetch_adds_trailing_slash_to_path_not_query() -> None:
    expected = "https://www.imdb.com/list/ls123456789/?sort=list_order,asc"
    session = _FakeSession({expected: _FakeResponse(200, SAMPLE_LIST_HTML)})
    result = ImdbListPageAdapter(session=session).fetch("https://www.imdb.com/list/ls123456789?sort=list_order,asc")

    assert session.calls == [expected]
    assert result.total_items == 3


def test_fetch_keeps_existing_slash_and_query() -> None:
    expected = "https://www.imdb.com/chart/top/?ref_=nv_mv_250"
    session = _FakeSession({expected: _FakeResponse(200, SAMPLE_LIST_HTML)})
    ImdbListPageAdapter(session=session).fetch("https://www.imdb.com/chart/top/?ref_=nv_mv_250")
    assert session.calls == [expected]
