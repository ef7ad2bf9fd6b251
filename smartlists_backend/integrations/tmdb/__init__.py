"""
TMDb integration clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smartlists_backend.integrations.tmdb.client import (
        TmdbListAdapter,
        TmdbRoute,
        resolve_tmdb_route,
    )

__all__ = [
    "TmdbListAdapter",
    "TmdbRoute",
    "resolve_tmdb_route",
]


def __getattr__(name: str):
    if name in __all__:
        from smartlists_backend.integrations.tmdb import client

        return getattr(client, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
