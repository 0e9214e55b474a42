"""Shared fixtures for marketplace integration tests."""

import pytest
from starlette.testclient import TestClient

from marketplace.server.app import create_app
from marketplace.server.settings import MarketplaceServerSettings
from marketplace.tests.integration.helpers import ADMIN_EMAIL
from shared.auth.settings import AuthSettings


@pytest.fixture
def app(tmp_path):
    return create_app(
        settings=MarketplaceServerSettings(search_debounce_seconds=0.01),
        auth_settings=AuthSettings(
            database_path=str(tmp_path / "market.db"),
            password_hasher="simple",
            admin_emails=[ADMIN_EMAIL],
        ),
    )


@pytest.fixture
def client(app):
    # One portal for the whole test so debounced searches share an event loop
    with TestClient(app) as test_client:
        yield test_client
