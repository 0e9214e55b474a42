"""Abstract interface for the session-issuing identity provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from shared.auth.models import Session, SignUpOutcome


class IdentityProvider(ABC):
    """Password sign-in, account creation and the caller's current session.

    One instance represents one client: it remembers the session it last
    issued, the way a browser SDK keeps its token. Failures raise StoreError
    (bad credentials included) or ConflictError (email already registered).
    """

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> Session: ...

    @abstractmethod
    async def sign_up(self, email: str, password: str, metadata: Mapping[str, str]) -> SignUpOutcome: ...

    @abstractmethod
    async def sign_out(self) -> None: ...

    @abstractmethod
    async def get_session(self) -> Session | None:
        """Return the current session, or None if absent or expired."""
