"""Abstract interface for account (credential) persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.auth.models import Account


class AccountRepository(ABC):
    """Abstract interface for account persistence.

    Emails are unique case-insensitively; create_account raises
    ConflictError on a duplicate id or email.
    """

    @abstractmethod
    async def create_account(self, account: Account) -> None: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Account | None: ...

    @abstractmethod
    async def confirm_email(self, user_id: str) -> None: ...
