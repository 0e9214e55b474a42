"""SQLite-backed NFT listing repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.listing_repository import ListingRepository
from shared.dal.models import ListingPage, ListingRow, SortField, SortOrder
from shared.errors import StoreError

if TYPE_CHECKING:
    from shared.dal.models import ListingQuery
    from shared.db.connection import Database

logger = structlog.get_logger()

_SORT_COLUMNS: dict[SortField, str] = {
    SortField.CREATED_AT: "l.created_at",
    SortField.PRICE: "CAST(l.price AS REAL)",
    SortField.NAME: "l.name COLLATE NOCASE",
    SortField.LIKES: "l.like_count",
    SortField.VIEWS: "l.view_count",
}

_FROM_SQL = """\
FROM listings AS l
LEFT JOIN profiles AS cp ON cp.id = l.creator_id
LEFT JOIN profiles AS op ON op.id = l.owner_id
LEFT JOIN collections AS c ON c.id = l.collection_id"""

_ROW_COLUMNS = (
    ("id", "l.id"),
    ("token_id", "l.token_id"),
    ("contract_address", "l.contract_address"),
    ("name", "l.name"),
    ("description", "l.description"),
    ("image_url", "l.image_url"),
    ("price", "l.price"),
    ("currency", "l.currency"),
    ("category", "l.category"),
    ("creator_id", "l.creator_id"),
    ("owner_id", "l.owner_id"),
    ("creator_username", "cp.username"),
    ("owner_username", "op.username"),
    ("collection_name", "c.name"),
    ("is_auction", "l.is_auction"),
    ("auction_end_time", "l.auction_end_time"),
    ("likes", "l.like_count"),
    ("views", "l.view_count"),
    ("attributes", "l.attributes"),
    ("created_at", "l.created_at"),
)

_ATTRIBUTE_MATCH_SQL = (
    "EXISTS (SELECT 1 FROM json_each(l.attributes) AS a "
    "WHERE json_extract(a.value, '$.trait_type') = ? AND json_extract(a.value, '$.value') = ?)"
)


def _like_pattern(text: str) -> str:
    """Wrap ``text`` for a substring LIKE, escaping LIKE wildcards."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _build_where(query: ListingQuery) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []

    if query.search:
        # SQLite LIKE is case-insensitive for ASCII
        clauses.append("(l.name LIKE ? ESCAPE '\\' OR l.description LIKE ? ESCAPE '\\')")
        pattern = _like_pattern(query.search)
        params.extend([pattern, pattern])
    if query.category:
        clauses.append("l.category = ?")
        params.append(query.category)
    if query.price_min is not None:
        clauses.append("CAST(l.price AS REAL) >= ?")
        params.append(query.price_min)
    if query.price_max is not None:
        clauses.append("CAST(l.price AS REAL) <= ?")
        params.append(query.price_max)
    if query.creator:
        clauses.append("cp.username = ? COLLATE NOCASE")
        params.append(query.creator)
    if query.is_auction is not None:
        clauses.append("l.is_auction = ?")
        params.append(int(query.is_auction))
    for attribute in query.attributes:
        clauses.append(_ATTRIBUTE_MATCH_SQL)
        params.extend([attribute.trait_type, attribute.value])

    if not clauses:
        return "", params
    return "WHERE " + " AND ".join(clauses), params


def _row_to_listing(row: tuple[Any, ...]) -> ListingRow:
    data = dict(zip((name for name, _ in _ROW_COLUMNS), row, strict=True))
    data["is_auction"] = bool(data["is_auction"])
    data["attributes"] = json.loads(data["attributes"] or "[]")
    return ListingRow.model_validate(data)


class SqliteListingRepository(ListingRepository):
    """SQLite implementation of ListingRepository.

    Sorting always breaks ties on listing id so pagination is stable.
    Every sqlite3 failure surfaces as StoreError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def query_listings(self, query: ListingQuery) -> ListingPage:
        where_sql, params = _build_where(query)
        direction = "ASC" if query.sort_order == SortOrder.ASC else "DESC"
        select_columns = ", ".join(expr for _, expr in _ROW_COLUMNS)
        rows_sql = (
            f"SELECT {select_columns} {_FROM_SQL} {where_sql} "  # noqa: S608
            f"ORDER BY {_SORT_COLUMNS[query.sort_by]} {direction}, l.id {direction} "
            "LIMIT ? OFFSET ?"
        )
        count_sql = f"SELECT COUNT(*) {_FROM_SQL} {where_sql}"  # noqa: S608

        try:
            conn = self._db.connection
            total = conn.execute(count_sql, params).fetchone()[0]
            rows = conn.execute(rows_sql, [*params, query.limit, query.offset]).fetchall()
        except (sqlite3.Error, RuntimeError) as exc:
            logger.warning("listing query failed", error=str(exc))
            raise StoreError("Failed to load listings") from exc

        return ListingPage(rows=tuple(_row_to_listing(row) for row in rows), total_count=total)

    async def create_collection(self, collection_id: str, name: str) -> None:
        async with self._lock:
            self._execute("INSERT INTO collections (id, name) VALUES (?, ?)", (collection_id, name))

    async def create_listing(self, listing: ListingRow, *, collection_id: str | None = None) -> None:
        """Insert a listing. Joined fields (usernames, collection name) on ``listing`` are ignored."""
        async with self._lock:
            self._execute(
                "INSERT INTO listings (id, token_id, contract_address, name, description, image_url, price, "
                "currency, category, creator_id, owner_id, collection_id, is_auction, auction_end_time, "
                "like_count, view_count, attributes, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    listing.id,
                    listing.token_id,
                    listing.contract_address,
                    listing.name,
                    listing.description,
                    listing.image_url,
                    str(listing.price),
                    listing.currency,
                    listing.category,
                    listing.creator_id,
                    listing.owner_id,
                    collection_id,
                    int(listing.is_auction),
                    listing.auction_end_time.isoformat() if listing.auction_end_time else None,
                    listing.likes,
                    listing.views,
                    json.dumps([a.model_dump() for a in listing.attributes]),
                    listing.created_at.isoformat(),
                ),
            )

    def _execute(self, sql: str, params: tuple[Any, ...]) -> None:
        conn = self._db.connection
        try:
            conn.execute(sql, params)
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreError from exc
