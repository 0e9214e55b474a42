"""Tests for AuthSettings configuration."""

import pytest
from pydantic import ValidationError

from shared.auth.settings import AuthSettings
from shared.ratelimit import RateLimitPolicy


@pytest.fixture(autouse=True)
def _clean_auth_env(monkeypatch):
    for name in ("AUTH_PASSWORD_HASHER", "AUTH_ADMIN_EMAILS", "AUTH_DATABASE_PATH"):
        monkeypatch.delenv(name, raising=False)


class TestAuthSettings:
    def test_defaults(self):
        settings = AuthSettings()
        assert settings.database_path == "backend/storage.db"
        assert settings.password_hasher == "bcrypt"
        assert settings.admin_emails == []
        assert settings.session_ttl_seconds == 86400
        assert settings.require_email_confirmation is False
        assert settings.cookie_secure is False

    def test_database_path_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTH_DATABASE_PATH", "custom/path/storage.db")
        assert AuthSettings().database_path == "custom/path/storage.db"

    def test_password_hasher_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTH_PASSWORD_HASHER", "simple")
        assert AuthSettings().password_hasher == "simple"

    def test_unknown_password_hasher_rejected(self, monkeypatch):
        monkeypatch.setenv("AUTH_PASSWORD_HASHER", "md5")
        with pytest.raises(ValidationError, match="password_hasher"):
            AuthSettings()

    def test_admin_emails_from_csv(self, monkeypatch):
        monkeypatch.setenv("AUTH_ADMIN_EMAILS", "Root@Example.com, ops@example.com")
        assert AuthSettings().admin_emails == ["root@example.com", "ops@example.com"]

    def test_admin_emails_from_json(self, monkeypatch):
        monkeypatch.setenv("AUTH_ADMIN_EMAILS", '["root@example.com"]')
        assert AuthSettings().admin_emails == ["root@example.com"]

    def test_admin_emails_empty_string(self, monkeypatch):
        monkeypatch.setenv("AUTH_ADMIN_EMAILS", "")
        assert AuthSettings().admin_emails == []

    def test_rate_limit_policies(self):
        settings = AuthSettings(auth_max_attempts=3, auth_window_seconds=30, general_max_attempts=7)
        assert settings.auth_policy == RateLimitPolicy(3, 30)
        assert settings.general_policy == RateLimitPolicy(7, 60)

    def test_rejects_non_positive_session_ttl(self):
        with pytest.raises(ValidationError, match="session_ttl_seconds"):
            AuthSettings(session_ttl_seconds=0)
