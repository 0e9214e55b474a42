"""In-memory access-token store with periodic expiry cleanup."""

import asyncio
import contextlib
import secrets
import time

import structlog

from shared.auth.models import Session

CLEANUP_INTERVAL_SECONDS = 300  # 5 minutes
DEFAULT_SESSION_TTL_SECONDS = 86400  # 24 hours

logger = structlog.get_logger()


class SessionTokenStore:
    """Issue and resolve opaque access tokens.

    Tokens are ephemeral: a server restart means signing in again.
    Call start_cleanup() on app startup and stop_cleanup() on shutdown.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._cleanup_task: asyncio.Task[None] | None = None

    def issue(self, user_id: str, email: str, ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS) -> Session:
        """Create a session with a fresh random access token."""
        session = Session(
            user_id=user_id,
            email=email,
            access_token=secrets.token_urlsafe(32),
            expires_at=time.time() + ttl_seconds,
        )
        self._sessions[session.access_token] = session
        return session

    def get(self, access_token: str) -> Session | None:
        """Return a valid (non-expired) session, or None."""
        session = self._sessions.get(access_token)
        if session is None:
            return None
        if time.time() > session.expires_at:
            del self._sessions[access_token]
            return None
        return session

    def revoke(self, access_token: str) -> None:
        """Remove a session (sign-out)."""
        self._sessions.pop(access_token, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def cleanup_expired(self) -> int:
        """Remove all expired sessions. Return count of removed sessions."""
        now = time.time()
        expired = [token for token, s in self._sessions.items() if now > s.expires_at]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.info("cleaned up expired sessions", count=len(expired))
        return len(expired)

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
            self.cleanup_expired()
