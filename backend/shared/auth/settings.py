"""Auth settings for the identity store, rate limits and admin detection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.ratelimit import RateLimitPolicy
from shared.validators import StringListEnvSettingsSource, parse_email_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_"}

    # SQLite database file path
    database_path: str = "backend/storage.db"

    # "simple" is for tests only
    password_hasher: Literal["bcrypt", "simple"] = "bcrypt"

    # Emails that are always treated as admin. Empty disables the fast path.
    admin_emails: list[str] = []

    session_ttl_seconds: int = Field(default=86400, gt=0)

    # When True, sign-up returns no session until the email is confirmed
    require_email_confirmation: bool = False

    auth_max_attempts: int = Field(default=5, ge=1)
    auth_window_seconds: float = Field(default=15 * 60, gt=0)
    general_max_attempts: int = Field(default=10, ge=1)
    general_window_seconds: float = Field(default=60, gt=0)

    # Cookie Secure flag -- True in production, False for local dev (HTTP)
    cookie_secure: bool = False

    @field_validator("admin_emails", mode="before")
    @classmethod
    def validate_admin_emails(cls, v: str | list[str]) -> list[str]:
        return parse_email_list(v)

    @property
    def auth_policy(self) -> RateLimitPolicy:
        return RateLimitPolicy(self.auth_max_attempts, self.auth_window_seconds)

    @property
    def general_policy(self) -> RateLimitPolicy:
        return RateLimitPolicy(self.general_max_attempts, self.general_window_seconds)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            StringListEnvSettingsSource(settings_cls, frozenset({"admin_emails"})),
            dotenv_settings,
            file_secret_settings,
        )
