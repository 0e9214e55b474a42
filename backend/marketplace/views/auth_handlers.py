"""Auth, profile and admin endpoints backed by the caller's client context."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

import pydantic
import structlog
from starlette.responses import JSONResponse

from marketplace.server.clients import CLIENT_COOKIE_NAME
from marketplace.views.responses import (
    error_response,
    get_client,
    invalid_body_response,
    parse_json_body,
    profile_payload,
    session_payload,
)
from shared import errors
from shared.auth.models import ProfileUpdate

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from shared.ratelimit import SlidingWindowRateLimiter

logger = structlog.get_logger()

PROFILE_UNAVAILABLE_MESSAGE = "Profile is unavailable. Please try again"


def _string_field(body: dict, name: str) -> str:
    value = body.get(name, "")
    return value if isinstance(value, str) else ""


async def signin(request: Request) -> Response:
    """POST /api/auth/signin {email, password}."""
    ctx = get_client(request)
    body = await parse_json_body(request)
    if body is None:
        return invalid_body_response()

    result = await ctx.auth.sign_in(_string_field(body, "email"), _string_field(body, "password"))
    if result.error is not None:
        # wrong credentials and unconfirmed email both surface as StoreError
        status = HTTPStatus.UNAUTHORIZED if isinstance(result.error, errors.StoreError) else None
        return error_response(result.error, status_code=status)
    return JSONResponse(session_payload(ctx))


async def signup(request: Request) -> Response:
    """POST /api/auth/signup {email, password, username}."""
    ctx = get_client(request)
    body = await parse_json_body(request)
    if body is None:
        return invalid_body_response()

    result = await ctx.auth.sign_up(
        _string_field(body, "email"),
        _string_field(body, "password"),
        _string_field(body, "username"),
    )
    if result.error is not None:
        return error_response(result.error)
    payload = session_payload(ctx)
    payload["email_confirmation_sent"] = result.email_confirmation_sent
    return JSONResponse(payload, status_code=HTTPStatus.CREATED)


async def signout(request: Request) -> Response:
    """POST /api/auth/signout - end the session and forget this client."""
    ctx = get_client(request)
    await ctx.auth.sign_out()
    await request.app.state.client_registry.discard(ctx.client_id)
    response = JSONResponse({"status": "signed_out"})
    response.delete_cookie(key=CLIENT_COOKIE_NAME, path="/")
    return response


async def current_session(request: Request) -> Response:
    """GET /api/auth/session."""
    return JSONResponse(session_payload(get_client(request)))


async def get_profile(request: Request) -> Response:
    """GET /api/profile - the signed-in user's profile."""
    ctx = get_client(request)
    profile = ctx.auth.profile or await ctx.auth.load_profile(request.user.user_id)
    if profile is None:
        return error_response(errors.StoreError(PROFILE_UNAVAILABLE_MESSAGE))
    return JSONResponse({"profile": profile_payload(profile)})


async def update_profile(request: Request) -> Response:
    """PATCH /api/profile {username?, bio?, website?, avatar_url?, wallet_address?}."""
    ctx = get_client(request)
    body = await parse_json_body(request)
    if body is None:
        return invalid_body_response()

    try:
        update = ProfileUpdate.model_validate(body)
    except pydantic.ValidationError as e:
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        return error_response(errors.ValidationError(messages))

    try:
        profile = await ctx.auth.update_profile(update)
    except errors.MarketplaceError as e:
        return error_response(e)
    return JSONResponse({"profile": profile_payload(profile)})


async def ensure_profile(request: Request) -> Response:
    """POST /api/profiles - create the signed-in user's profile if it is missing."""
    ctx = get_client(request)
    limiter: SlidingWindowRateLimiter = request.app.state.general_limiter
    user_id = request.user.user_id
    rate_key = f"profile_{user_id}"
    if not limiter.is_allowed(rate_key):
        return error_response(errors.RateLimitError(limiter.get_remaining_time(rate_key), action="profile"))

    profile = await ctx.auth.load_profile(user_id)
    if profile is None:
        return error_response(errors.StoreError(PROFILE_UNAVAILABLE_MESSAGE))
    return JSONResponse({"profile": profile_payload(profile)})


async def admin_status(request: Request) -> Response:
    """GET /api/admin/status - whether the signed-in user is an admin."""
    is_admin = await get_client(request).admin.is_user_admin()
    return JSONResponse({"is_admin": is_admin})


async def admin_ping(request: Request) -> Response:
    """GET /api/admin/ping - reachable by admins only."""
    logger.info("admin ping", user_id=request.user.user_id)
    return JSONResponse({"status": "ok"})
