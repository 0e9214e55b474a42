"""Account, session and profile models for authentication."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from shared.errors import AuthFailure


class AuthStatus(StrEnum):
    ANONYMOUS = "anonymous"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"


class Account(BaseModel, frozen=True):
    """Credential record held by the identity provider."""

    user_id: str
    email: str  # stored lowercased
    password_hash: str
    email_confirmed: bool = True
    metadata: dict[str, str] = Field(default_factory=dict)  # sign-up attributes, e.g. requested username
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("password_hash")
    @classmethod
    def _require_hash(cls, v: str) -> str:
        if not v:
            raise ValueError("Accounts must have a password hash")
        return v


@dataclass(frozen=True)
class Session:
    """Live session issued by the identity provider."""

    user_id: str
    email: str
    access_token: str
    expires_at: float  # time.time() + TTL


class Profile(BaseModel, frozen=True):
    """Marketplace-facing user record, keyed by the account's user id."""

    id: str
    username: str
    balance_eth: Decimal = Field(default=Decimal(0), ge=0)
    wallet_address: str | None = None
    is_admin: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    bio: str | None = None
    website: str | None = None
    avatar_url: str | None = None


class ProfileUpdate(BaseModel, frozen=True):
    """Self-editable subset of a profile. Only fields explicitly set are applied."""

    model_config = ConfigDict(extra="forbid")

    username: str | None = None
    bio: str | None = None
    website: str | None = None
    avatar_url: str | None = None
    wallet_address: str | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


@dataclass(frozen=True)
class SignUpOutcome:
    """What the identity provider reports after creating an account."""

    user_id: str
    email: str
    session: Session | None  # None while email confirmation is pending
    confirmation_sent: bool


@dataclass(frozen=True)
class AuthResult:
    error: AuthFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SignUpResult:
    error: AuthFailure | None = None
    email_confirmation_sent: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None
