"""SQLite database layer: connection management and repository implementations."""

from shared.db.account_repository import SqliteAccountRepository
from shared.db.connection import Database
from shared.db.listing_repository import SqliteListingRepository
from shared.db.profile_repository import SqliteProfileRepository

__all__ = [
    "Database",
    "SqliteAccountRepository",
    "SqliteListingRepository",
    "SqliteProfileRepository",
]
