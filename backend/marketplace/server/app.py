from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from marketplace.auth.backend import ClientSessionBackend
from marketplace.auth.policy import (
    admin_api,
    collect_protected_api_paths,
    protected_api,
    public_route,
    validate_route_auth_policy,
)
from marketplace.search.models import SearchConfig
from marketplace.server.clients import ClientContextFactory, ClientRegistry
from marketplace.server.middleware import (
    ClientContextMiddleware,
    SecurityHeadersMiddleware,
    SlashNormalizationMiddleware,
)
from marketplace.server.settings import MarketplaceServerSettings
from marketplace.views.auth_handlers import (
    admin_ping,
    admin_status,
    current_session,
    ensure_profile,
    get_profile,
    signin,
    signout,
    signup,
    update_profile,
)
from marketplace.views.responses import error_response
from marketplace.views.search_handlers import (
    get_preferences,
    search,
    search_state,
    suggestions,
    update_filters,
    update_preferences,
)
from shared.auth.password import get_hasher
from shared.auth.session_store import SessionTokenStore
from shared.auth.settings import AuthSettings
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.db import Database, SqliteAccountRepository, SqliteListingRepository, SqliteProfileRepository
from shared.errors import AuthRequiredError, MarketplaceError
from shared.logging import setup_logging
from shared.ratelimit import SlidingWindowRateLimiter

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.requests import Request


def _make_auth_error_handler(
    protected_api_paths: set[str],
) -> Callable[[Request, Exception], Awaitable[Response]]:
    """Build an HTTPException handler that rewrites 401s on protected JSON endpoints."""

    async def _auth_error_handler(request: Request, exc: Exception) -> Response:
        """Rewrite 401 errors on protected JSON endpoints to JSON responses.

        All other HTTP exceptions delegate to Starlette's default behavior
        (plain-text response with the exception detail).
        """
        http_exc = cast("HTTPException", exc)
        if http_exc.status_code == HTTPStatus.UNAUTHORIZED and request.url.path in protected_api_paths:
            return error_response(AuthRequiredError("Authentication required"))
        if http_exc.status_code in {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}:
            return Response(status_code=http_exc.status_code, headers=http_exc.headers)
        return PlainTextResponse(http_exc.detail or "", status_code=http_exc.status_code, headers=http_exc.headers)

    return _auth_error_handler


async def _domain_error_handler(_request: Request, exc: Exception) -> Response:
    """Render a domain error that escaped a handler."""
    err = cast("MarketplaceError", exc)
    logger.warning("unhandled domain error", code=err.code, error=err.message)
    return error_response(err)


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


def create_app(
    settings: MarketplaceServerSettings | None = None,
    auth_settings: AuthSettings | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = MarketplaceServerSettings()
    if auth_settings is None:  # pragma: no cover
        auth_settings = AuthSettings()

    routes = [
        # Public routes
        Route("/health", public_route(health), methods=["GET"], name="health"),
        Route("/api/auth/signin", public_route(signin), methods=["POST"], name="signin"),
        Route("/api/auth/signup", public_route(signup), methods=["POST"], name="signup"),
        Route("/api/auth/signout", public_route(signout), methods=["POST"], name="signout"),
        Route("/api/auth/session", public_route(current_session), methods=["GET"], name="current_session"),
        Route("/api/search", public_route(search), methods=["GET"], name="search"),
        Route("/api/search/filters", public_route(update_filters), methods=["PATCH"], name="update_filters"),
        Route("/api/search/state", public_route(search_state), methods=["GET"], name="search_state"),
        Route("/api/search/suggestions", public_route(suggestions), methods=["GET"], name="suggestions"),
        Route("/api/preferences", public_route(get_preferences), methods=["GET"], name="get_preferences"),
        Route("/api/preferences", public_route(update_preferences), methods=["PUT"], name="update_preferences"),
        # Protected JSON routes (return 401 JSON when unauthenticated)
        Route("/api/profile", protected_api(get_profile), methods=["GET"], name="get_profile"),
        Route("/api/profile", protected_api(update_profile), methods=["PATCH"], name="update_profile"),
        Route("/api/profiles", protected_api(ensure_profile), methods=["POST"], name="ensure_profile"),
        Route("/api/admin/status", protected_api(admin_status), methods=["GET"], name="admin_status"),
        # Admin routes (401 when unauthenticated, 403 for non-admins)
        Route("/api/admin/ping", admin_api(admin_ping), methods=["GET"], name="admin_ping"),
    ]

    validate_route_auth_policy(routes)
    protected_api_paths = collect_protected_api_paths(routes)

    # Initialize database, stores and per-client wiring
    db = Database(auth_settings.database_path)
    db.connect()
    accounts = SqliteAccountRepository(db)
    profiles = SqliteProfileRepository(db)
    listings = SqliteListingRepository(db)
    tokens = SessionTokenStore()
    auth_limiter = SlidingWindowRateLimiter.from_policy(auth_settings.auth_policy)
    general_limiter = SlidingWindowRateLimiter.from_policy(auth_settings.general_policy)
    factory = ClientContextFactory(
        accounts=accounts,
        profiles=profiles,
        listings=listings,
        tokens=tokens,
        password_hasher=get_hasher(auth_settings.password_hasher),
        auth_limiter=auth_limiter,
        auth_settings=auth_settings,
        search_config=SearchConfig.from_settings(settings),
        storage_dir=settings.client_storage_dir,
    )
    client_registry = ClientRegistry(factory, ttl_seconds=settings.client_ttl_seconds)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:  # pragma: no cover
        tokens.start_cleanup()
        client_registry.start_cleanup()
        yield
        await client_registry.stop_cleanup()
        await tokens.stop_cleanup()
        await client_registry.close_all()
        db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            HTTPException: _make_auth_error_handler(protected_api_paths),
            MarketplaceError: _domain_error_handler,
        },
    )
    # add_middleware wraps outward: ClientContext must run before Authentication
    app.add_middleware(SlashNormalizationMiddleware)  # type: ignore[arg-type]
    app.add_middleware(AuthenticationMiddleware, backend=ClientSessionBackend())  # type: ignore[arg-type]
    app.add_middleware(
        ClientContextMiddleware,  # type: ignore[arg-type]
        registry=client_registry,
        cookie_secure=auth_settings.cookie_secure,
    )
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PATCH", "PUT"],
        allow_headers=["Content-Type"],
        allow_credentials=True,
    )
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.db = db
    app.state.settings = settings
    app.state.auth_settings = auth_settings
    app.state.accounts = accounts
    app.state.profiles = profiles
    app.state.listings = listings
    app.state.tokens = tokens
    app.state.auth_limiter = auth_limiter
    app.state.general_limiter = general_limiter
    app.state.client_registry = client_registry

    logger.info("marketplace server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory marketplace.server.app:get_app."""
    s = MarketplaceServerSettings()
    auth = AuthSettings()
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s, auth_settings=auth)
