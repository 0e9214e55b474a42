"""Authentication: identity provider, session tokens, auth orchestrator and admin detection."""

from shared.auth.admin import AdminResolver
from shared.auth.identity import LocalIdentityProvider
from shared.auth.models import (
    Account,
    AuthResult,
    AuthStatus,
    Profile,
    ProfileUpdate,
    Session,
    SignUpOutcome,
    SignUpResult,
)
from shared.auth.password import BcryptHasher, PasswordHasher, SimpleHasher, get_hasher
from shared.auth.service import AuthService, AuthState
from shared.auth.session_store import SessionTokenStore
from shared.auth.settings import AuthSettings

__all__ = [
    "Account",
    "AdminResolver",
    "AuthResult",
    "AuthService",
    "AuthSettings",
    "AuthState",
    "AuthStatus",
    "BcryptHasher",
    "LocalIdentityProvider",
    "PasswordHasher",
    "Profile",
    "ProfileUpdate",
    "Session",
    "SessionTokenStore",
    "SignUpOutcome",
    "SignUpResult",
    "SimpleHasher",
    "get_hasher",
]
