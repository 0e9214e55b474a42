"""Per-browser client contexts: one auth and one search orchestrator per client cookie."""

from __future__ import annotations

import asyncio
import contextlib
import re
import secrets
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from marketplace.preferences import Preferences
from marketplace.search.service import SearchService
from shared.auth.admin import AdminResolver
from shared.auth.identity import LocalIdentityProvider
from shared.auth.service import AuthService
from shared.storage import JsonFileStorage, MemoryStorage

if TYPE_CHECKING:
    from marketplace.search.models import SearchConfig
    from shared.auth.password import PasswordHasher
    from shared.auth.session_store import SessionTokenStore
    from shared.auth.settings import AuthSettings
    from shared.dal.account_repository import AccountRepository
    from shared.dal.listing_repository import ListingRepository
    from shared.dal.profile_repository import ProfileRepository
    from shared.ratelimit import SlidingWindowRateLimiter
    from shared.storage import KeyValueStorage

CLIENT_COOKIE_NAME = "client_id"
CLEANUP_INTERVAL_SECONDS = 300  # 5 minutes
DEFAULT_CLIENT_TTL_SECONDS = 86400  # 24 hours

# Generated ids are token_urlsafe(32); accept nothing that could escape a storage dir
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{32,64}$")

logger = structlog.get_logger()


def is_valid_client_id(client_id: str | None) -> bool:
    return client_id is not None and _CLIENT_ID_PATTERN.match(client_id) is not None


def new_client_id() -> str:
    return secrets.token_urlsafe(32)


@dataclass
class ClientContext:
    """Everything one browser client owns on the server."""

    client_id: str
    identity: LocalIdentityProvider
    auth: AuthService
    admin: AdminResolver
    search: SearchService
    preferences: Preferences
    last_seen: float = field(default_factory=time.time)

    async def close(self) -> None:
        await self.search.close()


class ClientContextFactory:
    """Build client contexts wired to the shared stores and rate limiter."""

    def __init__(
        self,
        *,
        accounts: AccountRepository,
        profiles: ProfileRepository,
        listings: ListingRepository,
        tokens: SessionTokenStore,
        password_hasher: PasswordHasher,
        auth_limiter: SlidingWindowRateLimiter,
        auth_settings: AuthSettings,
        search_config: SearchConfig,
        storage_dir: str | None = None,
    ) -> None:
        self._accounts = accounts
        self._profiles = profiles
        self._listings = listings
        self._tokens = tokens
        self._hasher = password_hasher
        self._auth_limiter = auth_limiter
        self._auth_settings = auth_settings
        self._search_config = search_config
        self._storage_dir = Path(storage_dir).resolve() if storage_dir else None

    def __call__(self, client_id: str) -> ClientContext:
        identity = LocalIdentityProvider(
            self._accounts,
            self._tokens,
            password_hasher=self._hasher,
            session_ttl_seconds=self._auth_settings.session_ttl_seconds,
            require_email_confirmation=self._auth_settings.require_email_confirmation,
        )
        storage = self._storage_for(client_id)
        return ClientContext(
            client_id=client_id,
            identity=identity,
            auth=AuthService(identity, self._profiles, self._auth_limiter),
            admin=AdminResolver(identity, self._profiles, self._auth_settings.admin_emails),
            search=SearchService(self._listings, storage, self._search_config),
            preferences=Preferences(storage),
        )

    def _storage_for(self, client_id: str) -> KeyValueStorage:
        if self._storage_dir is None:
            return MemoryStorage()
        return JsonFileStorage(self._storage_dir / f"{client_id}.json")


class ClientRegistry:
    """In-memory map of client id to ClientContext with idle expiry.

    Contexts are ephemeral: a server restart starts every client anonymous.
    Call start_cleanup() on app startup and stop_cleanup() on shutdown.
    """

    def __init__(
        self,
        factory: ClientContextFactory,
        ttl_seconds: int = DEFAULT_CLIENT_TTL_SECONDS,
    ) -> None:
        self._factory = factory
        self._ttl = ttl_seconds
        self._clients: dict[str, ClientContext] = {}
        self._cleanup_task: asyncio.Task[None] | None = None

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def __len__(self) -> int:
        return len(self._clients)

    def get(self, client_id: str | None) -> ClientContext | None:
        """Return a live context and mark it as seen, or None."""
        if client_id is None:
            return None
        ctx = self._clients.get(client_id)
        if ctx is None:
            return None
        now = time.time()
        if now - ctx.last_seen > self._ttl:
            return None
        ctx.last_seen = now
        return ctx

    def get_or_create(self, client_id: str | None) -> tuple[ClientContext, bool]:
        """Return (context, created). Unknown or malformed ids get a fresh context."""
        ctx = self.get(client_id)
        if ctx is not None:
            return ctx, False
        if not is_valid_client_id(client_id) or client_id in self._clients:
            client_id = new_client_id()
        ctx = self._factory(client_id)
        self._clients[client_id] = ctx
        logger.debug("client context created", client_count=len(self._clients))
        return ctx, True

    async def discard(self, client_id: str) -> None:
        ctx = self._clients.pop(client_id, None)
        if ctx is not None:
            await ctx.close()

    async def cleanup_expired(self) -> int:
        """Remove idle contexts. Return count of removed contexts."""
        now = time.time()
        expired = [cid for cid, ctx in self._clients.items() if now - ctx.last_seen > self._ttl]
        for cid in expired:
            await self.discard(cid)
        if expired:
            logger.info("cleaned up idle clients", count=len(expired))
        return len(expired)

    async def close_all(self) -> None:
        for cid in list(self._clients):
            await self.discard(cid)

    def start_cleanup(self) -> None:
        """Start the periodic cleanup background task."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop_cleanup(self) -> None:
        """Stop the periodic cleanup background task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleanup_task
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
            await self.cleanup_expired()
