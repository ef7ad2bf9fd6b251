"""
IMDb integration clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smartlists_backend.integrations.imdb.list_page_client import (
        ImdbListPageAdapter,
        extract_imdb_title_ids,
    )

__all__ = [
    "ImdbListPageAdapter",
    "extract_imdb_title_ids",
]


def __getattr__(name: str):
    if name in __all__:
        from smartlists_backend.integrations.imdb import list_page_client

        return getattr(list_page_client, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
