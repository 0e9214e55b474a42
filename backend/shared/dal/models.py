"""Persistence models for NFT listing queries."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field


class SortField(StrEnum):
    CREATED_AT = "created_at"
    PRICE = "price"
    NAME = "name"
    LIKES = "likes"
    VIEWS = "views"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class ListingAttribute(BaseModel, frozen=True):
    """One trait on a listing, also used as an exact-match filter."""

    trait_type: str
    value: str


class ListingRow(BaseModel, frozen=True):
    """A listing as returned by the listing store, with creator/owner names joined in."""

    id: str
    token_id: int
    contract_address: str = ""
    name: str
    description: str = ""
    image_url: str = ""
    price: Decimal = Field(default=Decimal(0), ge=0)
    currency: str = "ETH"
    category: str = ""
    creator_id: str
    owner_id: str
    creator_username: str | None = None  # None when the creator has no profile yet
    owner_username: str | None = None
    collection_name: str | None = None
    is_auction: bool = False
    auction_end_time: datetime | None = None
    likes: int = 0
    views: int = 0
    attributes: tuple[ListingAttribute, ...] = ()
    created_at: datetime


class ListingQuery(BaseModel, frozen=True):
    """Filterable, sortable, paginated query over listings.

    Text search matches name or description case-insensitively. Every
    attribute filter must match (AND). None means "no filter".
    """

    search: str | None = None
    category: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    creator: str | None = None  # creator username, case-insensitive
    is_auction: bool | None = None
    attributes: tuple[ListingAttribute, ...] = ()
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=12, ge=1)


class ListingPage(BaseModel, frozen=True):
    rows: tuple[ListingRow, ...] = ()
    total_count: int = Field(default=0, ge=0)  # matches across all pages
