"""
Ingestion helpers for pulling external list data into a refresh batch.
"""

from smartlists_backend.ingestion.external_lists import (
    ExternalListAggregator,
    build_default_adapters,
    collect_external_list_urls,
)

__all__ = [
    "ExternalListAggregator",
    "build_default_adapters",
    "collect_external_list_urls",
]
