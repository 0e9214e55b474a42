"""Tests for Database connection and schema."""

from __future__ import annotations

import os
import stat
from typing import TYPE_CHECKING

import pytest

from shared.db.connection import Database

if TYPE_CHECKING:
    from pathlib import Path

EXPECTED_TABLES = {"accounts", "profiles", "collections", "listings"}


def _table_names(db: Database) -> set[str]:
    rows = db.connection.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return {row[0] for row in rows}


class TestConnect:
    def test_creates_schema_and_connects(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()

        assert db.is_connected
        assert EXPECTED_TABLES <= _table_names(db)
        db.close()

    def test_reconnect_after_close(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.close()
        db.connect()

        assert EXPECTED_TABLES <= _table_names(db)
        db.close()

    def test_connection_raises_when_disconnected(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        assert not db.is_connected
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.connection

    def test_connection_raises_after_close(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.close()
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.connection

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.close()
        db.close()

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "nested" / "dir" / "test.db")
        db.connect()

        assert (tmp_path / "nested" / "dir" / "test.db").exists()
        db.close()

    def test_uses_wal_journal(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()

        assert db.connection.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        db.close()

    def test_in_memory_database(self) -> None:
        db = Database(":memory:")
        db.connect()

        assert db.path == ":memory:"
        assert EXPECTED_TABLES <= _table_names(db)
        db.close()

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
    def test_database_file_is_owner_only(self, tmp_path: Path) -> None:
        path = tmp_path / "test.db"
        db = Database(path)
        db.connect()

        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        db.close()
