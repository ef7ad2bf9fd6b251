"""
MDBList integration (api.mdblist.com list items).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smartlists_backend.integrations.mdblist.client import (
        MdbListAdapter,
        parse_mdblist_url,
    )

__all__ = [
    "MdbListAdapter",
    "parse_mdblist_url",
]


def __getattr__(name: str):
    if name in __all__:
        from smartlists_backend.integrations.mdblist import client

        return getattr(client, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
