"""JSON helpers shared by the API handlers: body parsing, error mapping, payload shapes."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from starlette.responses import JSONResponse

from shared import errors

if TYPE_CHECKING:
    from starlette.requests import Request

    from marketplace.search.models import SearchState
    from marketplace.server.clients import ClientContext
    from shared.auth.models import Profile

_ERROR_STATUS: dict[type[errors.MarketplaceError], HTTPStatus] = {
    errors.ValidationError: HTTPStatus.BAD_REQUEST,
    errors.AuthRequiredError: HTTPStatus.UNAUTHORIZED,
    errors.ConflictError: HTTPStatus.CONFLICT,
    errors.RateLimitError: HTTPStatus.TOO_MANY_REQUESTS,
    errors.StoreError: HTTPStatus.SERVICE_UNAVAILABLE,
    errors.UnknownError: HTTPStatus.INTERNAL_SERVER_ERROR,
}


def get_client(request: Request) -> ClientContext:
    """Return the ClientContext attached by ClientContextMiddleware."""
    return request.state.client


async def parse_json_body(request: Request) -> dict | None:
    """Parse JSON body from request. Return None on failure."""
    try:
        body = await request.json()
    except (ValueError, json.JSONDecodeError):  # fmt: skip
        return None
    if not isinstance(body, dict):
        return None
    return body


def invalid_body_response() -> JSONResponse:
    return JSONResponse(
        {"error": "Invalid JSON body", "code": errors.ValidationError.code},
        status_code=HTTPStatus.BAD_REQUEST,
    )


def error_response(err: errors.MarketplaceError, *, status_code: int | None = None) -> JSONResponse:
    """Render a domain error as ``{error, code}`` with its mapped status."""
    status = status_code or _ERROR_STATUS.get(type(err), HTTPStatus.INTERNAL_SERVER_ERROR)
    body: dict[str, Any] = {"error": err.user_message, "code": err.code}
    headers: dict[str, str] = {}
    if isinstance(err, errors.ValidationError):
        body["errors"] = err.errors
    if isinstance(err, errors.RateLimitError):
        headers["Retry-After"] = str(err.retry_after_seconds)
    return JSONResponse(body, status_code=status, headers=headers or None)


def profile_payload(profile: Profile | None) -> dict[str, Any] | None:
    if profile is None:
        return None
    return profile.model_dump(mode="json")


def session_payload(ctx: ClientContext) -> dict[str, Any]:
    """Current auth status of a client. Never includes the access token."""
    state = ctx.auth.state
    session = state.session
    return {
        "status": state.status.value,
        "session": {"user_id": session.user_id, "email": session.email} if session else None,
        "profile": profile_payload(state.profile),
    }


def search_payload(state: SearchState) -> dict[str, Any]:
    return {
        "filters": state.filters.model_dump(mode="json"),
        "results": [result.model_dump(mode="json") for result in state.results],
        "is_loading": state.is_loading,
        "error": state.error,
        "degraded": state.degraded,
        "total_count": state.total_count,
        "current_page": state.current_page,
        "total_pages": state.total_pages,
        "recent_searches": list(state.recent_searches),
    }
