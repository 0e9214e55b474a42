"""User model for Starlette AuthenticationMiddleware integration."""

from __future__ import annotations

from starlette.authentication import BaseUser


class AuthenticatedUser(BaseUser):
    """Authenticated user for Starlette's request.user.

    Created by the auth backend from the client's live session.
    """

    def __init__(self, user_id: str, email: str, username: str | None = None) -> None:
        self._user_id = user_id
        self._email = email
        self._username = username

    @property
    def is_authenticated(self) -> bool:  # pragma: no cover
        return True

    @property
    def display_name(self) -> str:
        return self._username or self._email

    @property
    def identity(self) -> str:  # pragma: no cover
        return self._user_id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def email(self) -> str:
        return self._email

    @property
    def username(self) -> str | None:
        return self._username
