"""
Trakt integration clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smartlists_backend.integrations.trakt.client import (
        TraktListAdapter,
        resolve_trakt_api_path,
    )

__all__ = [
    "TraktListAdapter",
    "resolve_trakt_api_path",
]


def __getattr__(name: str):
    if name in __all__:
        from smartlists_backend.integrations.trakt import client

        return getattr(client, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
