"""Marketplace authentication: Starlette backend, user model, and route policy."""

from marketplace.auth.backend import ClientSessionBackend
from marketplace.auth.models import AuthenticatedUser
from marketplace.auth.policy import admin_api, protected_api, public_route, validate_route_auth_policy

__all__ = [
    "AuthenticatedUser",
    "ClientSessionBackend",
    "admin_api",
    "protected_api",
    "public_route",
    "validate_route_auth_policy",
]
