"""NFT search: filter state, debounced queries, pagination and fallback data."""

from marketplace.search.models import SearchConfig, SearchFilters, SearchResult, SearchState
from marketplace.search.service import RECENT_SEARCHES_KEY, SearchService

__all__ = [
    "RECENT_SEARCHES_KEY",
    "SearchConfig",
    "SearchFilters",
    "SearchResult",
    "SearchService",
    "SearchState",
]
