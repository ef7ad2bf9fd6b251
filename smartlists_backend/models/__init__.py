"""
Domain models shared across adapters, the aggregator, and scripts.
"""

from smartlists_backend.models.external_lists import FetchCache, FetchResult

__all__ = [
    "FetchCache",
    "FetchResult",
]
