"""Tests for SessionTokenStore."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import patch

from shared.auth.session_store import SessionTokenStore


class TestIssue:
    def test_issues_session_with_correct_fields(self):
        store = SessionTokenStore()
        before = time.time()
        session = store.issue("user-1", "alice@example.com", ttl_seconds=60)

        assert session.user_id == "user-1"
        assert session.email == "alice@example.com"
        assert session.access_token
        assert before + 60 <= session.expires_at <= time.time() + 60

    def test_tokens_are_unique(self):
        store = SessionTokenStore()
        s1 = store.issue("u1", "a@x.io")
        s2 = store.issue("u1", "a@x.io")
        assert s1.access_token != s2.access_token
        assert len(store) == 2


class TestGet:
    def test_retrieves_valid_session(self):
        store = SessionTokenStore()
        session = store.issue("u1", "a@x.io")

        result = store.get(session.access_token)
        assert result == session

    def test_returns_none_for_unknown_token(self):
        assert SessionTokenStore().get("nonexistent") is None

    def test_returns_none_and_removes_expired_session(self):
        store = SessionTokenStore()
        session = store.issue("u1", "a@x.io", ttl_seconds=0)

        with patch("shared.auth.session_store.time") as mock_time:
            mock_time.time.return_value = session.expires_at + 1
            result = store.get(session.access_token)

        assert result is None
        assert len(store) == 0


class TestRevoke:
    def test_revoke_removes_session(self):
        store = SessionTokenStore()
        session = store.issue("u1", "a@x.io")

        store.revoke(session.access_token)
        assert store.get(session.access_token) is None

    def test_revoke_unknown_token_is_noop(self):
        SessionTokenStore().revoke("nonexistent")


class TestCleanupExpired:
    def test_removes_expired_sessions(self):
        store = SessionTokenStore()
        store.issue("u1", "a@x.io", ttl_seconds=0)
        store.issue("u2", "b@x.io", ttl_seconds=0)
        active = store.issue("u3", "c@x.io", ttl_seconds=3600)

        with patch("shared.auth.session_store.time") as mock_time:
            mock_time.time.return_value = time.time() + 1
            removed = store.cleanup_expired()

        assert removed == 2
        assert store.get(active.access_token) is not None

    def test_returns_zero_when_nothing_expired(self):
        store = SessionTokenStore()
        store.issue("u1", "a@x.io", ttl_seconds=3600)
        assert store.cleanup_expired() == 0


class TestCleanupLifecycle:
    async def test_start_and_stop_cleanup(self):
        store = SessionTokenStore()
        store.start_cleanup()
        task = store._cleanup_task
        assert task is not None
        assert not task.done()

        await store.stop_cleanup()
        assert store._cleanup_task is None
        assert task.cancelled()

    async def test_start_cleanup_is_idempotent(self):
        store = SessionTokenStore()
        store.start_cleanup()
        first = store._cleanup_task
        store.start_cleanup()
        assert store._cleanup_task is first
        await store.stop_cleanup()

    async def test_cleanup_loop_runs_periodically(self):
        store = SessionTokenStore()
        with (
            patch("shared.auth.session_store.CLEANUP_INTERVAL_SECONDS", 0),
            patch.object(store, "cleanup_expired") as cleanup,
        ):
            store.start_cleanup()
            await asyncio.sleep(0.01)
            await store.stop_cleanup()
        assert cleanup.call_count >= 1
