"""Local identity provider: password accounts in the account store, sessions as opaque tokens."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from shared.auth.models import Account, SignUpOutcome
from shared.auth.session_store import DEFAULT_SESSION_TTL_SECONDS
from shared.dal.identity_provider import IdentityProvider
from shared.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from shared.auth.models import Session
    from shared.auth.password import PasswordHasher
    from shared.auth.session_store import SessionTokenStore
    from shared.dal.account_repository import AccountRepository

logger = structlog.get_logger()

INVALID_CREDENTIALS_MESSAGE = "Invalid login credentials"


class LocalIdentityProvider(IdentityProvider):
    """IdentityProvider backed by an AccountRepository and a SessionTokenStore.

    The account repository and token store are shared; each instance tracks
    the one token it issued, so a server keeps one instance per client.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        tokens: SessionTokenStore,
        *,
        password_hasher: PasswordHasher,
        session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        require_email_confirmation: bool = False,
    ) -> None:
        self._accounts = accounts
        self._tokens = tokens
        self._hasher = password_hasher
        self._ttl = session_ttl_seconds
        self._require_confirmation = require_email_confirmation
        self._current_token: str | None = None

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        account = await self._accounts.get_by_email(email)
        # Same message for unknown email and wrong password
        if account is None or not await self._hasher.verify(password, account.password_hash):
            raise StoreError(INVALID_CREDENTIALS_MESSAGE)
        if not account.email_confirmed:
            raise StoreError("Email not confirmed")
        return self._start_session(account)

    async def sign_up(self, email: str, password: str, metadata: Mapping[str, str]) -> SignUpOutcome:
        account = Account(
            user_id=str(uuid4()),
            email=email.lower(),
            password_hash=await self._hasher.hash(password),
            email_confirmed=not self._require_confirmation,
            metadata=dict(metadata),
        )
        await self._accounts.create_account(account)
        logger.info("account created", user_id=account.user_id)

        if self._require_confirmation:
            logger.info("email confirmation pending", user_id=account.user_id)
            return SignUpOutcome(user_id=account.user_id, email=account.email, session=None, confirmation_sent=True)

        session = self._start_session(account)
        return SignUpOutcome(user_id=account.user_id, email=account.email, session=session, confirmation_sent=False)

    async def sign_out(self) -> None:
        if self._current_token is not None:
            self._tokens.revoke(self._current_token)
            self._current_token = None

    async def get_session(self) -> Session | None:
        if self._current_token is None:
            return None
        session = self._tokens.get(self._current_token)
        if session is None:
            self._current_token = None
        return session

    def _start_session(self, account: Account) -> Session:
        if self._current_token is not None:
            self._tokens.revoke(self._current_token)
        session = self._tokens.issue(account.user_id, account.email, ttl_seconds=self._ttl)
        self._current_token = session.access_token
        return session


async def confirm_account_email(accounts: AccountRepository, email: str) -> Account:
    """Mark the account registered under ``email`` as confirmed and return it.

    Confirming an already confirmed account is a no-op. Raises StoreError
    when no account exists for ``email``.
    """
    account = await accounts.get_by_email(email)
    if account is None:
        raise StoreError(f"No account for {email}")
    if account.email_confirmed:
        return account
    await accounts.confirm_email(account.user_id)
    logger.info("email confirmed", user_id=account.user_id)
    return account.model_copy(update={"email_confirmed": True})
