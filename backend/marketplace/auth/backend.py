"""Starlette AuthenticationBackend that reads the session of the caller's client context."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import AuthCredentials, AuthenticationBackend

from marketplace.auth.models import AuthenticatedUser

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from marketplace.server.clients import ClientContext

AUTHENTICATED_SCOPE = "authenticated"
ADMIN_SCOPE = "admin"


class ClientSessionBackend(AuthenticationBackend):
    """Authenticate requests from the session held by their ClientContext.

    Expects ClientContextMiddleware to have run first. A session that
    expired since the last request clears the client's auth state. Admins
    get the extra ``admin`` scope.
    """

    async def authenticate(
        self,
        conn: HTTPConnection,
    ) -> tuple[AuthCredentials, AuthenticatedUser] | None:
        ctx: ClientContext | None = getattr(conn.state, "client", None)
        if ctx is None:
            return None

        session = await ctx.identity.get_session()
        if session is None:
            if ctx.auth.session is not None:
                await ctx.auth.refresh_session()
            return None

        scopes = [AUTHENTICATED_SCOPE]
        if await ctx.admin.is_user_admin():
            scopes.append(ADMIN_SCOPE)
        profile = ctx.auth.profile
        return AuthCredentials(scopes), AuthenticatedUser(
            user_id=session.user_id,
            email=session.email,
            username=profile.username if profile else None,
        )
