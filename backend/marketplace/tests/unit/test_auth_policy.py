"""Tests for auth policy helpers and route validation."""

from __future__ import annotations

import json

import pytest
from starlette.applications import Starlette
from starlette.authentication import AuthCredentials
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.routing import Mount, Route

from marketplace.auth.policy import (
    admin_api,
    collect_protected_api_paths,
    protected_api,
    public_route,
    validate_route_auth_policy,
)


def _make_request(*, scopes: list[str] | None = None) -> Request:
    """Build a real Starlette Request with auth scopes pre-set."""
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/thing",
        "query_string": b"",
        "headers": [],
        "root_path": "",
        "server": ("testserver", 80),
        "scheme": "http",
        "auth": AuthCredentials(scopes or []),
    }
    return Request(scope)


async def _dummy_handler(request: Request) -> str:
    return "ok"


def _sync_dummy_handler(request: Request) -> str:
    return "ok"


class TestProtectedApi:
    async def test_unauthenticated_raises_401(self) -> None:
        wrapped = protected_api(_dummy_handler)

        with pytest.raises(HTTPException) as exc_info:
            await wrapped(_make_request())

        assert exc_info.value.status_code == 401

    async def test_authenticated_passes_through(self) -> None:
        wrapped = protected_api(_dummy_handler)

        result = await wrapped(_make_request(scopes=["authenticated"]))

        assert result == "ok"


class TestAdminApi:
    async def test_unauthenticated_raises_401(self) -> None:
        wrapped = admin_api(_dummy_handler)

        with pytest.raises(HTTPException) as exc_info:
            await wrapped(_make_request())

        assert exc_info.value.status_code == 401

    async def test_non_admin_gets_403_json(self) -> None:
        wrapped = admin_api(_dummy_handler)

        result = await wrapped(_make_request(scopes=["authenticated"]))

        assert result.status_code == 403
        assert json.loads(result.body) == {"error": "Admin access required", "code": "FORBIDDEN"}

    async def test_admin_passes_through(self) -> None:
        wrapped = admin_api(_dummy_handler)

        result = await wrapped(_make_request(scopes=["authenticated", "admin"]))

        assert result == "ok"

    def test_sync_admin_passes_through(self) -> None:
        wrapped = admin_api(_sync_dummy_handler)

        result = wrapped(_make_request(scopes=["authenticated", "admin"]))

        assert result == "ok"

    def test_sync_non_admin_gets_403(self) -> None:
        wrapped = admin_api(_sync_dummy_handler)

        result = wrapped(_make_request(scopes=["authenticated"]))

        assert result.status_code == 403

    def test_sync_unauthenticated_raises_401(self) -> None:
        wrapped = admin_api(_sync_dummy_handler)

        with pytest.raises(HTTPException) as exc_info:
            wrapped(_make_request())

        assert exc_info.value.status_code == 401


class TestPublicRoute:
    async def test_does_not_block_unauthenticated(self) -> None:
        wrapped = public_route(_dummy_handler)

        result = await wrapped(_make_request())

        assert result == "ok"

    def test_sync_does_not_block_unauthenticated(self) -> None:
        wrapped = public_route(_sync_dummy_handler)

        result = wrapped(_make_request())

        assert result == "ok"

    def test_marker_lives_on_wrapper(self) -> None:
        handler = _make_handler()

        public_route(handler)

        assert not hasattr(handler, "__auth_policy__")


def _make_handler() -> object:
    """Return a fresh async handler with no attributes from prior tests."""

    async def handler(request: Request) -> str:
        return "ok"

    return handler


class TestValidateRouteAuthPolicy:
    def test_all_routes_classified_passes(self) -> None:
        routes = [
            Route("/a", public_route(_make_handler()), methods=["GET"], name="a"),
            Route("/b", protected_api(_make_handler()), methods=["GET"], name="b"),
            Route("/c", admin_api(_make_handler()), methods=["GET"], name="c"),
        ]

        validate_route_auth_policy(routes)

    def test_unclassified_route_raises_runtime_error(self) -> None:
        routes = [
            Route("/ok", public_route(_make_handler()), methods=["GET"], name="ok"),
            Route("/bad", _make_handler(), methods=["GET"], name="bad"),
        ]

        with pytest.raises(RuntimeError, match="Unclassified routes"):
            validate_route_auth_policy(routes)

    def test_error_message_includes_path_and_name(self) -> None:
        routes = [Route("/missing", _make_handler(), methods=["GET"], name="missing_route")]

        with pytest.raises(RuntimeError, match=r"/missing \(missing_route\)"):
            validate_route_auth_policy(routes)

    def test_mount_is_exempt(self) -> None:
        routes = [
            Route("/a", public_route(_make_handler()), methods=["GET"], name="a"),
            Mount("/static", app=Starlette(), name="static"),
        ]

        validate_route_auth_policy(routes)

    def test_multiple_unclassified_routes_all_reported(self) -> None:
        routes = [
            Route("/x", _make_handler(), methods=["GET"], name="x"),
            Route("/y", _make_handler(), methods=["POST"], name="y"),
        ]

        with pytest.raises(RuntimeError, match="/x") as exc_info:
            validate_route_auth_policy(routes)
        assert "/y" in str(exc_info.value)


class TestCollectProtectedApiPaths:
    def test_collects_protected_and_admin_paths(self) -> None:
        routes = [
            Route("/api/profile", protected_api(_make_handler()), methods=["GET"], name="profile"),
            Route("/api/admin/ping", admin_api(_make_handler()), methods=["GET"], name="ping"),
            Route("/health", public_route(_make_handler()), methods=["GET"], name="health"),
        ]

        result = collect_protected_api_paths(routes)

        assert result == {"/api/profile", "/api/admin/ping"}

    def test_ignores_mounts(self) -> None:
        routes = [
            Route("/api/profile", protected_api(_make_handler()), methods=["GET"], name="profile"),
            Mount("/static", app=Starlette(), name="static"),
        ]

        result = collect_protected_api_paths(routes)

        assert result == {"/api/profile"}
