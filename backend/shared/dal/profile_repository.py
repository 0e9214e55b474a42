"""Abstract interface for profile persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from shared.auth.models import Profile


class ProfileRepository(ABC):
    """Abstract interface for profile persistence.

    Implementations raise ConflictError when a username is already taken
    (case-insensitively) and StoreError for any other backend failure.
    """

    @abstractmethod
    async def get_profile(self, user_id: str) -> Profile | None: ...

    @abstractmethod
    async def get_by_username(self, username: str) -> Profile | None: ...

    @abstractmethod
    async def upsert_profile(self, profile: Profile) -> Profile:
        """Create the profile, or overwrite the row with the same id. Idempotent."""

    @abstractmethod
    async def update_profile(self, user_id: str, changes: Mapping[str, object]) -> Profile:
        """Apply ``changes`` to an existing profile and return the stored result.

        Raises StoreError when no profile exists for ``user_id``.
        """
