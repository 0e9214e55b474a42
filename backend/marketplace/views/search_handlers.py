"""Search and preference endpoints. All of them are public and per-client."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import pydantic
import structlog
from starlette.responses import JSONResponse

from marketplace.views.responses import (
    error_response,
    get_client,
    invalid_body_response,
    parse_json_body,
    search_payload,
)
from shared import errors
from shared.dal.models import ListingAttribute

if TYPE_CHECKING:
    from starlette.datastructures import QueryParams
    from starlette.requests import Request
    from starlette.responses import Response

logger = structlog.get_logger()

# query parameter -> SearchFilters field
_FILTER_PARAMS = {
    "q": "query",
    "category": "category",
    "price_min": "price_min",
    "price_max": "price_max",
    "sort_by": "sort_by",
    "sort_order": "sort_order",
    "creator": "creator",
}
_BOOL_VALUES = {"true": True, "false": False}


def _validation_messages(exc: pydantic.ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in exc.errors()]


def _filters_from_params(params: QueryParams) -> dict[str, Any]:
    """Translate query parameters into a full set of filter values.

    Raises errors.ValidationError for malformed ``is_auction`` or ``attribute`` values.
    """
    filters: dict[str, Any] = {field: params.get(param, "") for param, field in _FILTER_PARAMS.items()}
    for field in ("sort_by", "sort_order"):
        if not filters[field]:
            del filters[field]

    problems: list[str] = []
    auction = params.get("is_auction")
    if auction:
        if auction.lower() not in _BOOL_VALUES:
            problems.append("is_auction must be true or false")
        else:
            filters["is_auction"] = _BOOL_VALUES[auction.lower()]
    else:
        filters["is_auction"] = None

    attributes: list[ListingAttribute] = []
    for raw in params.getlist("attribute"):
        trait, sep, value = raw.partition(":")
        if not sep or not trait.strip() or not value.strip():
            problems.append(f"attribute must look like trait:value, got {raw!r}")
            continue
        attributes.append(ListingAttribute(trait_type=trait.strip(), value=value.strip()))
    filters["attributes"] = attributes

    if problems:
        raise errors.ValidationError(problems)
    return filters


def _page_param(params: QueryParams) -> int | None:
    raw = params.get("page")
    if raw is None or raw == "":
        return None
    try:
        page = int(raw)
    except ValueError:
        raise errors.ValidationError(["page must be a positive integer"]) from None
    if page < 1:
        raise errors.ValidationError(["page must be a positive integer"])
    return page


async def search(request: Request) -> Response:
    """GET /api/search?q=&category=&price_min=&price_max=&sort_by=&sort_order=&creator=&is_auction=&attribute=&page=

    Replaces the client's filters with the given parameters and searches
    immediately, cancelling any pending debounced search.
    """
    ctx = get_client(request)
    try:
        filters = _filters_from_params(request.query_params)
        page = _page_param(request.query_params)
        ctx.search.update_filters(**filters)
    except errors.ValidationError as e:
        return error_response(e)
    except pydantic.ValidationError as e:
        return error_response(errors.ValidationError(_validation_messages(e)))

    state = await ctx.search.search(page)
    return JSONResponse(search_payload(state))


async def update_filters(request: Request) -> Response:
    """PATCH /api/search/filters {field: value, ...} - merge filters and schedule a debounced search."""
    ctx = get_client(request)
    body = await parse_json_body(request)
    if body is None:
        return invalid_body_response()

    try:
        ctx.search.update_filters(**body)
    except pydantic.ValidationError as e:
        return error_response(errors.ValidationError(_validation_messages(e)))
    return JSONResponse(search_payload(ctx.search.state), status_code=HTTPStatus.ACCEPTED)


async def search_state(request: Request) -> Response:
    """GET /api/search/state - wait for a pending debounced search, then return the state."""
    state = await get_client(request).search.flush()
    return JSONResponse(search_payload(state))


async def suggestions(request: Request) -> Response:
    """GET /api/search/suggestions?q=."""
    names = await get_client(request).search.get_suggestions(request.query_params.get("q", ""))
    return JSONResponse({"suggestions": names})


async def get_preferences(request: Request) -> Response:
    """GET /api/preferences."""
    return JSONResponse(get_client(request).preferences.as_dict())


async def update_preferences(request: Request) -> Response:
    """PUT /api/preferences {dark_mode?, wallet_connected?}."""
    preferences = get_client(request).preferences
    body = await parse_json_body(request)
    if body is None:
        return invalid_body_response()

    unknown = sorted(set(body) - {"dark_mode", "wallet_connected"})
    problems = [f"{key}: unknown preference" for key in unknown]
    problems.extend(
        f"{key}: must be a boolean"
        for key in ("dark_mode", "wallet_connected")
        if key in body and not isinstance(body[key], bool)
    )
    if problems:
        return error_response(errors.ValidationError(problems))

    try:
        if "dark_mode" in body:
            preferences.dark_mode = body["dark_mode"]
        if "wallet_connected" in body:
            preferences.wallet_connected = body["wallet_connected"]
    except OSError as e:
        logger.warning("could not persist preferences", error=str(e))
        return error_response(errors.StoreError("Could not save preferences. Please try again"))
    return JSONResponse(preferences.as_dict())
