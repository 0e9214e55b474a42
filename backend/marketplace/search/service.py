"""Search orchestrator: filter state, debounced queries, pagination and recent searches.

Every filter or page change restarts a quiet-period timer; only when it
elapses does a search run. Each search takes a monotonically increasing
token and its response is dropped if a later search was issued meanwhile,
so results are applied in issuance order, not completion order.

When the listing store fails, the orchestrator serves deterministic
placeholder results and sets ``degraded`` instead of surfacing an error.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import json
import math
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from marketplace.search.fallback import fallback_results
from marketplace.search.models import SearchConfig, SearchFilters, SearchResult, SearchState
from shared.dal.models import ListingQuery

if TYPE_CHECKING:
    from shared.dal.listing_repository import ListingRepository
    from shared.storage import KeyValueStorage

logger = structlog.get_logger()

RECENT_SEARCHES_KEY = "artmint_recent_searches"

SearchListener = Callable[[SearchState], None]


def parse_price(text: str) -> float | None:
    """Parse a price bound; blank, malformed or non-finite input means no bound."""
    stripped = text.strip()
    if not stripped:
        return None
    try:
        value = float(stripped)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def build_query(filters: SearchFilters, page: int, page_size: int) -> ListingQuery:
    """Translate filters and a 1-based page into a listing store query."""
    query_text = filters.query.strip()
    return ListingQuery(
        search=query_text or None,
        category=filters.category or None,
        price_min=parse_price(filters.price_min),
        price_max=parse_price(filters.price_max),
        creator=filters.creator.strip() or None,
        is_auction=filters.is_auction,
        attributes=filters.attributes,
        sort_by=filters.sort_by,
        sort_order=filters.sort_order,
        offset=(max(page, 1) - 1) * page_size,
        limit=page_size,
    )


class SearchService:
    """Own one client's search state against a listing store."""

    def __init__(
        self,
        listings: ListingRepository,
        storage: KeyValueStorage,
        config: SearchConfig | None = None,
    ) -> None:
        self._listings = listings
        self._storage = storage
        self._config = config or SearchConfig()
        self._state = SearchState(recent_searches=self._load_recent_searches())
        self._listeners: list[SearchListener] = []
        self._debounce_task: asyncio.Task[None] | None = None
        self._issued = 0

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def config(self) -> SearchConfig:
        return self._config

    @property
    def has_pending_search(self) -> bool:
        return self._debounce_task is not None and not self._debounce_task.done()

    def subscribe(self, listener: SearchListener) -> Callable[[], None]:
        """Register a listener; return a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def initialize(self) -> None:
        """Schedule the first search for the current filters and page, without the quiet period."""
        self._schedule_search(delay=0)

    def update_filters(self, /, **changes: Any) -> SearchFilters:  # noqa: ANN401
        """Merge ``changes`` into the filters, reset to page 1 and schedule a search.

        Raises pydantic.ValidationError for unknown fields or invalid values;
        state is left untouched in that case.
        """
        filters = SearchFilters.model_validate({**self._state.filters.model_dump(), **changes})
        self._replace(filters=filters, current_page=1)
        self._schedule_search()
        return filters

    def clear_filters(self) -> None:
        self._replace(filters=SearchFilters(), current_page=1)
        self._schedule_search()

    def set_page(self, page: int) -> None:
        self._replace(current_page=max(page, 1))
        self._schedule_search()

    async def search(self, page: int | None = None) -> SearchState:
        """Run a search now for ``page`` (default: the current page)."""
        if self._debounce_task is not None and self._debounce_task is not asyncio.current_task():
            self._debounce_task.cancel()

        self._issued += 1
        token = self._issued
        target_page = max(page if page is not None else self._state.current_page, 1)
        filters = self._state.filters
        self._replace(is_loading=True, error=None)

        query_text = filters.query.strip()
        if query_text:
            self.add_to_recent_searches(query_text)

        page_size = self._config.page_size
        while True:
            try:
                listing_page = await self._listings.query_listings(build_query(filters, target_page, page_size))
            except Exception as e:
                if token != self._issued:
                    return self._state
                logger.warning("listing store failed, serving fallback results", error=str(e), page=target_page)
                results = fallback_results(self._config.fallback_count)
                total_count = self._config.fallback_total
                degraded = True
                break
            if token != self._issued:
                logger.debug("discarding stale search response", token=token, latest=self._issued)
                return self._state
            last_page = max(math.ceil(listing_page.total_count / page_size), 1)
            if target_page > last_page:
                # Past the end: fetch the last page instead of showing it empty.
                logger.debug("page beyond last, querying last page", page=target_page, last_page=last_page)
                target_page = last_page
                continue
            results = tuple(SearchResult.from_row(row) for row in listing_page.rows)
            total_count = listing_page.total_count
            degraded = False
            break

        total_pages = math.ceil(total_count / page_size)
        self._replace(
            results=results,
            total_count=total_count,
            total_pages=total_pages,
            current_page=min(target_page, max(total_pages, 1)),
            is_loading=False,
            error=None,
            degraded=degraded,
        )
        return self._state

    def add_to_recent_searches(self, query: str) -> None:
        """Prepend ``query`` to the deduplicated, capped history and persist it."""
        text = query.strip()
        if not text:
            return
        recent = (text, *(s for s in self._state.recent_searches if s != text))
        recent = recent[: self._config.max_recent_searches]
        try:
            self._storage.set(RECENT_SEARCHES_KEY, json.dumps(list(recent)))
        except OSError as e:
            logger.warning("could not persist recent searches", error=str(e))
        self._replace(recent_searches=recent)

    async def get_suggestions(self, query: str) -> list[str]:
        """Return up to ``suggestion_limit`` listing names containing ``query``. Never raises."""
        text = query.strip()
        if len(text) < self._config.suggestion_min_length:
            return []
        limit = self._config.suggestion_limit
        try:
            listing_page = await self._listings.query_listings(ListingQuery(search=text, limit=limit))
        except Exception as e:
            logger.warning("suggestion lookup failed", error=str(e))
            return []
        needle = text.lower()
        suggestions = [row.name for row in listing_page.rows if needle in row.name.lower()][:limit]
        self._replace(suggestions=tuple(suggestions))
        return suggestions

    async def flush(self) -> SearchState:
        """Wait for the pending debounced search, if any, and return the resulting state."""
        while (task := self._debounce_task) is not None and not task.done():
            await asyncio.wait({task})
        return self._state

    async def close(self) -> None:
        """Cancel the pending debounced search."""
        task = self._debounce_task
        self._debounce_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # -- private helpers --

    def _schedule_search(self, delay: float | None = None) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no running event loop, search not scheduled")
            return
        self._debounce_task = loop.create_task(self._debounced_search(delay))

    async def _debounced_search(self, delay: float | None = None) -> None:
        await asyncio.sleep(self._config.debounce_seconds if delay is None else delay)
        try:
            await self.search()
        except Exception:
            logger.exception("debounced search failed")

    def _load_recent_searches(self) -> tuple[str, ...]:
        raw = self._storage.get(RECENT_SEARCHES_KEY)
        if not raw:
            return ()
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("ignoring malformed recent searches")
            return ()
        if not isinstance(items, list):
            return ()
        return tuple(str(item) for item in items if isinstance(item, str))[: self._config.max_recent_searches]

    def _replace(self, **changes: Any) -> None:  # noqa: ANN401
        self._state = dataclasses.replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("search listener failed")
