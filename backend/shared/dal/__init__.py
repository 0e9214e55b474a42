"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.account_repository import AccountRepository
from shared.dal.identity_provider import IdentityProvider
from shared.dal.listing_repository import ListingRepository
from shared.dal.models import ListingAttribute, ListingPage, ListingQuery, ListingRow, SortField, SortOrder
from shared.dal.profile_repository import ProfileRepository

__all__ = [
    "AccountRepository",
    "IdentityProvider",
    "ListingAttribute",
    "ListingPage",
    "ListingQuery",
    "ListingRepository",
    "ListingRow",
    "ProfileRepository",
    "SortField",
    "SortOrder",
]
