"""Auth orchestrator: sign-in, sign-up, sign-out and lazy profile provisioning.

One AuthService holds the state of one client: at most one Session and the
Profile attached to it. sign_in/sign_up return their failures as values;
update_profile raises; load_profile and refresh_session never raise.
"""

from __future__ import annotations

import asyncio
import contextlib
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from shared.auth.models import AuthResult, AuthStatus, Profile, SignUpResult
from shared.errors import (
    AuthRequiredError,
    ConflictError,
    RateLimitError,
    StoreError,
    UnknownError,
    ValidationError,
)
from shared.validation import (
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    is_valid_email,
    is_valid_password,
    is_valid_username,
    sanitize_string,
    validate_profile_update,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from shared.auth.models import ProfileUpdate, Session
    from shared.dal.identity_provider import IdentityProvider
    from shared.dal.profile_repository import ProfileRepository
    from shared.ratelimit import SlidingWindowRateLimiter

logger = structlog.get_logger()

INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
PASSWORD_REQUIRED_MESSAGE = "Password is required"
USERNAME_TAKEN_MESSAGE = "Username is already taken. Please choose a different username."

_USER_ID_SUFFIX_LENGTH = 8
_NON_USERNAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


@dataclass(frozen=True)
class AuthState:
    """Snapshot handed to subscribers after every state change."""

    status: AuthStatus
    session: Session | None
    profile: Profile | None
    loading: bool


AuthListener = Callable[[AuthState], None]


def normalize_email(email: str) -> str:
    """Lowercase, trim and escape an email for storage and rate-limit keys."""
    return sanitize_string(email.strip().lower())


def username_seed(email: str, user_id: str) -> str:
    """Derive a valid username from the email local part, or from the user id."""
    local = _NON_USERNAME_CHARS.sub("", email.partition("@")[0]).strip("_-")[:USERNAME_MAX_LENGTH]
    if len(local) < USERNAME_MIN_LENGTH:
        return f"user_{user_id[:_USER_ID_SUFFIX_LENGTH]}"
    return local


def _suffixed_username(seed: str, user_id: str) -> str:
    suffix = user_id.replace("-", "")[:_USER_ID_SUFFIX_LENGTH]
    head = seed[: USERNAME_MAX_LENGTH - len(suffix) - 1].rstrip("_-")
    return f"{head}_{suffix}"


class AuthService:
    """Coordinate one client's session and profile against the identity and profile stores.

    sign_in, sign_up, sign_out and initialize are single-flight: they run
    one at a time under a lock, and ``loading`` is True while one is active.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        profiles: ProfileRepository,
        rate_limiter: SlidingWindowRateLimiter,
    ) -> None:
        self._identity = identity
        self._profiles = profiles
        self._rate_limiter = rate_limiter
        self._session: Session | None = None
        self._profile: Profile | None = None
        self._loading = False
        self._lock = asyncio.Lock()
        self._listeners: list[AuthListener] = []

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def profile(self) -> Profile | None:
        return self._profile

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def status(self) -> AuthStatus:
        if self._loading:
            return AuthStatus.LOADING
        if self._session is not None:
            return AuthStatus.AUTHENTICATED
        return AuthStatus.ANONYMOUS

    @property
    def state(self) -> AuthState:
        return AuthState(status=self.status, session=self._session, profile=self._profile, loading=self._loading)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener; return a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    async def initialize(self) -> None:
        """Pick up an existing session from the identity provider."""
        async with self._in_flight():
            await self._refresh()

    async def sign_in(self, email: str, password: str) -> AuthResult:
        errors: list[str] = []
        if not is_valid_email(email):
            errors.append(INVALID_EMAIL_MESSAGE)
        if not password:
            errors.append(PASSWORD_REQUIRED_MESSAGE)
        if errors:
            return AuthResult(error=ValidationError(errors))

        clean_email = normalize_email(email)
        rate_key = f"signin_{clean_email}"
        if not self._rate_limiter.is_allowed(rate_key):
            return AuthResult(error=RateLimitError(self._rate_limiter.get_remaining_time(rate_key), action="login"))

        async with self._in_flight():
            try:
                session = await self._identity.sign_in_with_password(clean_email, password)
            except (StoreError, ConflictError) as e:
                logger.info("sign-in rejected", email=clean_email, reason=e.message)
                return AuthResult(error=e)
            except Exception as e:
                logger.exception("unexpected sign-in failure", email=clean_email)
                return AuthResult(error=UnknownError.wrap(e))

            self._session = session
            logger.info("signed in", user_id=session.user_id)
            await self.load_profile(session.user_id)
        return AuthResult()

    async def sign_up(self, email: str, password: str, username: str) -> SignUpResult:
        errors: list[str] = []
        if not is_valid_email(email):
            errors.append(INVALID_EMAIL_MESSAGE)
        errors.extend(is_valid_password(password).errors)
        errors.extend(is_valid_username(username).errors)
        if errors:
            return SignUpResult(error=ValidationError(errors))

        clean_email = normalize_email(email)
        clean_username = sanitize_string(username)
        rate_key = f"signup_{clean_email}"
        if not self._rate_limiter.is_allowed(rate_key):
            return SignUpResult(error=RateLimitError(self._rate_limiter.get_remaining_time(rate_key), action="signup"))

        async with self._in_flight():
            try:
                if await self._profiles.get_by_username(clean_username) is not None:
                    return SignUpResult(error=ConflictError(USERNAME_TAKEN_MESSAGE))
                outcome = await self._identity.sign_up(clean_email, password, {"username": clean_username})
            except (StoreError, ConflictError) as e:
                logger.info("sign-up rejected", email=clean_email, reason=e.message)
                return SignUpResult(error=e)
            except Exception as e:
                logger.exception("unexpected sign-up failure", email=clean_email)
                return SignUpResult(error=UnknownError.wrap(e))

            await self._provision_profile(outcome.user_id, clean_username)

            if outcome.session is not None:
                self._session = outcome.session
                await self.load_profile(outcome.session.user_id)
        return SignUpResult(email_confirmation_sent=outcome.confirmation_sent)

    async def load_profile(self, user_id: str) -> Profile | None:
        """Fetch the profile, creating it if missing. Never raises."""
        try:
            profile = await self._profiles.get_profile(user_id)
            if profile is None:
                profile = await self._create_missing_profile(user_id)
        except Exception:
            logger.exception("failed to load profile", user_id=user_id)
            profile = None
        self._profile = profile
        self._notify()
        return profile

    async def sign_out(self) -> None:
        """Sign out at the provider; local state is cleared even if that fails."""
        async with self._in_flight():
            user_id = self._session.user_id if self._session else None
            try:
                await self._identity.sign_out()
            except Exception:
                logger.exception("identity provider sign-out failed", user_id=user_id)
            self._session = None
            self._profile = None
            logger.info("signed out", user_id=user_id)

    async def update_profile(self, update: ProfileUpdate) -> Profile:
        """Apply a self-service profile edit. Raises on every failure."""
        if self._session is None:
            raise AuthRequiredError()
        changes = update.changes()
        result = validate_profile_update(changes)
        if not result.is_valid:
            raise ValidationError(result.errors)

        updated = await self._profiles.update_profile(self._session.user_id, changes)
        self._profile = updated
        self._notify()
        logger.info("profile updated", user_id=updated.id, fields=sorted(changes))
        return updated

    async def refresh_session(self) -> None:
        """Re-derive session and profile from the identity provider. Never raises."""
        await self._refresh()
        self._notify()

    # -- private helpers --

    @contextlib.asynccontextmanager
    async def _in_flight(self) -> AsyncIterator[None]:
        async with self._lock:
            self._loading = True
            self._notify()
            try:
                yield
            finally:
                self._loading = False
                self._notify()

    async def _refresh(self) -> None:
        try:
            session = await self._identity.get_session()
        except Exception:
            logger.exception("failed to read current session")
            return
        self._session = session
        if session is None:
            self._profile = None
            return
        await self.load_profile(session.user_id)

    async def _provision_profile(self, user_id: str, username: str) -> None:
        try:
            await self._profiles.upsert_profile(Profile(id=user_id, username=username))
        except Exception:
            # load_profile recreates it on the next session load
            logger.exception("profile provisioning failed", user_id=user_id)

    async def _create_missing_profile(self, user_id: str) -> Profile:
        email = self._session.email if self._session and self._session.user_id == user_id else ""
        seed = username_seed(email, user_id)
        try:
            return await self._profiles.upsert_profile(Profile(id=user_id, username=seed))
        except ConflictError:
            return await self._profiles.upsert_profile(Profile(id=user_id, username=_suffixed_username(seed, user_id)))

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("auth listener failed")

