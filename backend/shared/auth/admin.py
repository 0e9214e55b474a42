"""Admin detection for the current session."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.dal.identity_provider import IdentityProvider
    from shared.dal.profile_repository import ProfileRepository

logger = structlog.get_logger()


class AdminResolver:
    """Decide whether the current session belongs to an admin.

    Emails in ``admin_emails`` are admins regardless of their profile flag,
    so an operator keeps access even when the profile row is missing.
    Otherwise the profile's ``is_admin`` flag decides. Fails closed.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        profiles: ProfileRepository,
        admin_emails: Iterable[str] = (),
    ) -> None:
        self._identity = identity
        self._profiles = profiles
        self._admin_emails = frozenset(email.strip().lower() for email in admin_emails if email.strip())

    async def is_user_admin(self) -> bool:
        try:
            session = await self._identity.get_session()
            if session is None:
                return False
            if session.email.lower() in self._admin_emails:
                return True
            profile = await self._profiles.get_profile(session.user_id)
        except Exception:
            logger.exception("admin check failed")
            return False
        return profile is not None and profile.is_admin
