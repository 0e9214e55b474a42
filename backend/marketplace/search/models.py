"""Search filter, result and state models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from shared.dal.models import ListingAttribute, SortField, SortOrder

if TYPE_CHECKING:
    from marketplace.server.settings import MarketplaceServerSettings
    from shared.dal.models import ListingRow

UNKNOWN_USER = "Unknown"


class SearchFilters(BaseModel, frozen=True):
    """Current query intent. Empty strings and None mean "no filter"."""

    model_config = ConfigDict(extra="forbid")

    query: str = ""
    category: str = ""
    price_min: str = ""  # numeric string, parsed when the query is built
    price_max: str = ""
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    creator: str = ""
    is_auction: bool | None = None
    attributes: tuple[ListingAttribute, ...] = ()


class SearchResult(BaseModel, frozen=True):
    id: str
    token_id: int
    contract_address: str = ""
    name: str
    description: str = ""
    image: str = ""
    price: Decimal = Decimal(0)
    currency: str = "ETH"
    creator: str = UNKNOWN_USER
    owner: str = UNKNOWN_USER
    creator_id: str
    owner_id: str
    collection: str | None = None
    is_auction: bool = False
    auction_end_time: datetime | None = None
    likes: int = 0
    views: int = 0
    attributes: tuple[ListingAttribute, ...] = ()
    created_at: datetime
    is_fallback: bool = False  # synthesized placeholder, not real inventory

    @classmethod
    def from_row(cls, row: ListingRow) -> SearchResult:
        return cls(
            id=row.id,
            token_id=row.token_id,
            contract_address=row.contract_address,
            name=row.name,
            description=row.description,
            image=row.image_url,
            price=row.price,
            currency=row.currency or "ETH",
            creator=row.creator_username or UNKNOWN_USER,
            owner=row.owner_username or UNKNOWN_USER,
            creator_id=row.creator_id,
            owner_id=row.owner_id,
            collection=row.collection_name,
            is_auction=row.is_auction,
            auction_end_time=row.auction_end_time,
            likes=row.likes,
            views=row.views,
            attributes=row.attributes,
            created_at=row.created_at,
        )


class SearchConfig(BaseModel):
    """Tuning for pagination, debounce, history and fallback data."""

    page_size: int = Field(default=12, ge=1)
    debounce_seconds: float = Field(default=0.5, ge=0)
    max_recent_searches: int = Field(default=10, ge=1)
    suggestion_min_length: int = Field(default=2, ge=1)
    suggestion_limit: int = Field(default=5, ge=1)
    fallback_count: int = Field(default=12, ge=1)
    fallback_total: int = Field(default=50, ge=0)

    @classmethod
    def from_settings(cls, settings: MarketplaceServerSettings) -> SearchConfig:
        return cls(page_size=settings.search_page_size, debounce_seconds=settings.search_debounce_seconds)


@dataclass(frozen=True)
class SearchState:
    """Public state of one client's search. Replaced wholesale on every change."""

    filters: SearchFilters = field(default_factory=SearchFilters)
    results: tuple[SearchResult, ...] = ()
    is_loading: bool = False
    error: str | None = None
    degraded: bool = False  # results are fallback data
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 0
    suggestions: tuple[str, ...] = ()
    recent_searches: tuple[str, ...] = ()
