"""Route auth policy helpers for fail-closed authorization.

Each helper wraps a route endpoint and sets the ``AUTH_POLICY_ATTR`` marker
so that startup validation can verify every route has an explicit auth policy.
"""

from __future__ import annotations

import functools
import inspect
from typing import TYPE_CHECKING

from starlette.authentication import has_required_scope, requires
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from marketplace.auth.backend import ADMIN_SCOPE, AUTHENTICATED_SCOPE

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from starlette.requests import Request
    from starlette.routing import BaseRoute

AUTH_POLICY_ATTR = "__auth_policy__"


def _admin_denied() -> Response:
    return JSONResponse({"error": "Admin access required", "code": "FORBIDDEN"}, status_code=403)


def protected_api(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Require authentication; raise 401 for unauthenticated API requests."""
    wrapped = requires(AUTHENTICATED_SCOPE, status_code=401)(endpoint)
    setattr(wrapped, AUTH_POLICY_ATTR, "protected_api")
    return wrapped


def admin_api(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Require an authenticated admin.

    Returns 401 (via HTTPException) when unauthenticated.
    Returns 403 JSON when authenticated but not an admin.
    """
    if inspect.iscoroutinefunction(endpoint):

        @functools.wraps(endpoint)
        async def async_wrapper(request: Request, **kwargs: str) -> Response:
            if not has_required_scope(request, [AUTHENTICATED_SCOPE]):
                raise HTTPException(status_code=401)
            if not has_required_scope(request, [ADMIN_SCOPE]):
                return _admin_denied()
            return await endpoint(request, **kwargs)

        setattr(async_wrapper, AUTH_POLICY_ATTR, "admin_api")
        return async_wrapper

    @functools.wraps(endpoint)
    def sync_wrapper(request: Request, **kwargs: str) -> Response:
        if not has_required_scope(request, [AUTHENTICATED_SCOPE]):
            raise HTTPException(status_code=401)
        if not has_required_scope(request, [ADMIN_SCOPE]):
            return _admin_denied()
        return endpoint(request, **kwargs)

    setattr(sync_wrapper, AUTH_POLICY_ATTR, "admin_api")
    return sync_wrapper


def public_route(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Mark endpoint as explicitly public (no auth required).

    Returns a thin wrapper so the marker lives on the wrapper, not on the
    original callable.  This prevents accidental policy leakage when the
    same function object is reused on another route without wrapping.
    """
    if inspect.iscoroutinefunction(endpoint):

        @functools.wraps(endpoint)
        async def async_wrapper(request: Request, **kwargs: str) -> Response:
            return await endpoint(request, **kwargs)

        setattr(async_wrapper, AUTH_POLICY_ATTR, "public")
        return async_wrapper

    @functools.wraps(endpoint)
    def sync_wrapper(request: Request, **kwargs: str) -> Response:
        return endpoint(request, **kwargs)

    setattr(sync_wrapper, AUTH_POLICY_ATTR, "public")
    return sync_wrapper


_API_POLICIES = {"protected_api", "admin_api"}


def collect_protected_api_paths(routes: list[BaseRoute]) -> set[str]:
    """Return the set of path strings for routes marked ``protected_api`` or ``admin_api``."""
    paths: set[str] = set()
    for route in routes:
        if isinstance(route, Route) and getattr(route.endpoint, AUTH_POLICY_ATTR, None) in _API_POLICIES:
            paths.add(route.path)
    return paths


def validate_route_auth_policy(routes: list[BaseRoute]) -> None:
    """Verify every Route has an auth policy marker. Mount routes are exempt.

    Raises RuntimeError listing all unclassified routes if any are found.
    """
    unclassified: list[str] = []
    for route in routes:
        if isinstance(route, Mount):
            continue
        if isinstance(route, Route) and not hasattr(route.endpoint, AUTH_POLICY_ATTR):
            name = route.name or getattr(route.endpoint, "__name__", "unknown")
            unclassified.append(f"{route.path} ({name})")

    if unclassified:
        details = ", ".join(unclassified)
        msg = f"Unclassified routes missing auth policy: {details}"
        raise RuntimeError(msg)
