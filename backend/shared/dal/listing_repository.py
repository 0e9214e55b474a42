"""Abstract interface for the NFT listing store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import ListingPage, ListingQuery


class ListingRepository(ABC):
    """Filterable, sortable, paginated read access to listings.

    Implementations raise StoreError on any backend failure.
    """

    @abstractmethod
    async def query_listings(self, query: ListingQuery) -> ListingPage: ...
