"""SQLite-backed profile repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.auth.models import Profile
from shared.dal.profile_repository import ProfileRepository
from shared.errors import ConflictError, StoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteProfileRepository(ProfileRepository):
    """SQLite implementation of ProfileRepository.

    Writes run under an asyncio lock. The full profile is stored as JSON
    next to an indexed username column; the case-insensitive unique index
    on that column is the source of truth for username uniqueness.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_profile(self, user_id: str) -> Profile | None:
        return self._fetch("SELECT data FROM profiles WHERE id = ?", (user_id,))

    async def get_by_username(self, username: str) -> Profile | None:
        """Look up a profile by username (case-insensitive)."""
        return self._fetch("SELECT data FROM profiles WHERE username = ? COLLATE NOCASE", (username,))

    async def upsert_profile(self, profile: Profile) -> Profile:
        async with self._lock:
            self._write(
                "INSERT INTO profiles (id, username, data) VALUES (?, ?, ?) "
                "ON CONFLICT (id) DO UPDATE SET username = excluded.username, data = excluded.data",
                (profile.id, profile.username, profile.model_dump_json()),
                profile.username,
            )
        logger.info("profile upserted", user_id=profile.id, username=profile.username)
        return profile

    async def update_profile(self, user_id: str, changes: Mapping[str, object]) -> Profile:
        async with self._lock:
            current = self._fetch("SELECT data FROM profiles WHERE id = ?", (user_id,))
            if current is None:
                raise StoreError(f"Profile '{user_id}' not found")
            updated = Profile.model_validate({**current.model_dump(), **changes})
            self._write(
                "UPDATE profiles SET username = ?, data = ? WHERE id = ?",
                (updated.username, updated.model_dump_json(), user_id),
                updated.username,
            )
        return updated

    def _fetch(self, sql: str, params: tuple[str, ...]) -> Profile | None:
        try:
            row = self._db.connection.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StoreError from exc
        if row is None:
            return None
        return Profile.model_validate(json.loads(row[0]))

    def _write(self, sql: str, params: tuple[str, ...], username: str) -> None:
        conn = self._db.connection
        try:
            conn.execute(sql, params)
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ConflictError(f"Username '{username}' is already taken") from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreError from exc
