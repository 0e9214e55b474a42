"""Domain error taxonomy shared by the auth and search layers.

Validators, the rate limiter and the admin resolver never raise these.
The auth orchestrator returns them from sign-in/sign-up and raises them
from profile updates. Repositories raise ConflictError and StoreError.
"""

from __future__ import annotations

import math
from typing import ClassVar


class MarketplaceError(Exception):
    """Base class for every domain error."""

    code: ClassVar[str] = "UNKNOWN"
    default_user_message: ClassVar[str] = "An unexpected error occurred. Please try again"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_user_message
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        return self.message


class ValidationError(MarketplaceError):
    """Input failed one or more validation rules.

    Not to be confused with pydantic.ValidationError; handlers import this
    module as ``errors`` to keep the two apart.
    """

    code = "VALIDATION_FAILED"
    default_user_message = "Please check your input and try again"

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(". ".join(self.errors) if self.errors else None)


class RateLimitError(MarketplaceError):
    """Too many attempts for a key within the limiter window."""

    code = "RATE_LIMITED"

    def __init__(self, retry_after: float, action: str = "login") -> None:
        self.retry_after = max(0.0, retry_after)
        minutes = max(1, math.ceil(self.retry_after / 60))
        plural = "" if minutes == 1 else "s"
        super().__init__(f"Too many {action} attempts. Please try again in {minutes} minute{plural}.")

    @property
    def retry_after_seconds(self) -> int:
        return math.ceil(self.retry_after)


class ConflictError(MarketplaceError):
    """A unique value (username, email) is already in use."""

    code = "CONFLICT"
    default_user_message = "That value is already taken"


class StoreError(MarketplaceError):
    """The backing identity, profile or listing store failed."""

    code = "STORE_ERROR"
    default_user_message = "Database error occurred. Please try again"


class AuthRequiredError(MarketplaceError):
    """The operation needs an active session."""

    code = "AUTH_REQUIRED"
    default_user_message = "Please sign in to continue"


class UnknownError(MarketplaceError):
    """Catch-all wrapper for unexpected failures."""

    code = "UNKNOWN"

    @classmethod
    def wrap(cls, exc: BaseException) -> UnknownError:
        err = cls()
        err.__cause__ = exc
        return err


# Closed set returned (not raised) by AuthService.sign_in / sign_up.
AuthFailure = ValidationError | RateLimitError | ConflictError | StoreError | UnknownError
