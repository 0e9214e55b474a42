"""ASGI middleware for the marketplace server."""

from __future__ import annotations

from http.cookies import CookieError, SimpleCookie
from typing import TYPE_CHECKING

from marketplace.server.clients import CLIENT_COOKIE_NAME

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from marketplace.server.clients import ClientRegistry

_CSP = (
    "default-src 'self'; "
    "img-src 'self' https: data:; "
    "script-src 'self'; "
    "style-src 'self' 'unsafe-inline'; "
    "connect-src 'self'; "
    "frame-ancestors 'none'; form-action 'self'; base-uri 'self'"
)

SECURITY_HEADERS: list[tuple[bytes, bytes]] = [
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"referrer-policy", b"strict-origin-when-cross-origin"),
    (b"permissions-policy", b"camera=(), microphone=(), geolocation=()"),
    (b"content-security-policy", _CSP.encode()),
]


class SecurityHeadersMiddleware:
    """Inject standard security headers into every HTTP response."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.extend(SECURITY_HEADERS)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_headers)


class SlashNormalizationMiddleware:
    """Strip trailing slashes so that /path/ is handled the same as /path.

    Without this, Starlette's default ``redirect_slashes=True`` responds
    with a 307 redirect for the trailing-slash variant, which bypasses
    authentication and turns a 401 on ``/api/profile/`` into a redirect.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            path: str = scope["path"]
            if len(path) > 1 and path.endswith("/"):
                scope["path"] = path.rstrip("/")
        await self.app(scope, receive, send)


def build_client_cookie(client_id: str, *, max_age: int, secure: bool) -> bytes:
    cookie: SimpleCookie = SimpleCookie()
    cookie[CLIENT_COOKIE_NAME] = client_id
    morsel = cookie[CLIENT_COOKIE_NAME]
    morsel["path"] = "/"
    morsel["httponly"] = True
    morsel["samesite"] = "lax"
    morsel["max-age"] = str(max_age)
    if secure:
        morsel["secure"] = True
    return morsel.OutputString().encode("latin-1")


class ClientContextMiddleware:
    """Attach the caller's ClientContext to ``scope["state"]["client"]``.

    Clients without a known ``client_id`` cookie get a fresh context and a
    Set-Cookie header on the response.
    """

    def __init__(self, app: ASGIApp, registry: ClientRegistry, *, cookie_secure: bool = False) -> None:
        self.app = app
        self._registry = registry
        self._cookie_secure = cookie_secure

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx, created = self._registry.get_or_create(_get_cookie_from_scope(scope, CLIENT_COOKIE_NAME))
        scope.setdefault("state", {})["client"] = ctx
        if not created:
            await self.app(scope, receive, send)
            return

        ctx.search.initialize()
        set_cookie = build_client_cookie(ctx.client_id, max_age=self._registry.ttl_seconds, secure=self._cookie_secure)

        async def send_with_cookie(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                if not any(name == b"set-cookie" and CLIENT_COOKIE_NAME.encode() in value for name, value in headers):
                    headers.append((b"set-cookie", set_cookie))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_cookie)


def _get_cookie_from_scope(scope: Scope, name: str) -> str | None:
    """Extract a cookie value from the ASGI scope headers."""
    for header_name, header_value in scope.get("headers", []):
        if header_name == b"cookie":
            try:
                cookie = SimpleCookie(header_value.decode("latin-1"))
            except CookieError:
                continue
            morsel = cookie.get(name)
            if morsel is not None:
                return morsel.value
    return None
