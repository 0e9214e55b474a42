"""SQLite-backed account repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING

from shared.auth.models import Account
from shared.dal.account_repository import AccountRepository
from shared.errors import ConflictError, StoreError

if TYPE_CHECKING:
    from shared.db.connection import Database


class SqliteAccountRepository(AccountRepository):
    """SQLite implementation of AccountRepository.

    Relies on the unique email index rather than a read-then-insert check,
    and maps IntegrityError to ConflictError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_account(self, account: Account) -> None:
        """Insert an account. Raises ConflictError on duplicate id or email."""
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute(
                    "INSERT INTO accounts (id, email, data) VALUES (?, ?, ?)",
                    (account.user_id, account.email, account.model_dump_json()),
                )
                conn.commit()
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                if "idx_accounts_email" in str(exc) or "accounts.email" in str(exc):
                    raise ConflictError("An account with this email already exists") from exc
                raise ConflictError(f"Account with id '{account.user_id}' already exists") from exc
            except sqlite3.Error as exc:
                conn.rollback()
                raise StoreError from exc

    async def get_by_email(self, email: str) -> Account | None:
        """Look up an account by email (case-insensitive)."""
        return self._fetch("SELECT data FROM accounts WHERE email = ? COLLATE NOCASE", (email,))

    async def confirm_email(self, user_id: str) -> None:
        async with self._lock:
            account = self._fetch("SELECT data FROM accounts WHERE id = ?", (user_id,))
            if account is None:
                raise StoreError(f"Account '{user_id}' not found")
            confirmed = account.model_copy(update={"email_confirmed": True})
            conn = self._db.connection
            try:
                conn.execute("UPDATE accounts SET data = ? WHERE id = ?", (confirmed.model_dump_json(), user_id))
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                raise StoreError from exc

    def _fetch(self, sql: str, params: tuple[str, ...]) -> Account | None:
        try:
            row = self._db.connection.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StoreError from exc
        if row is None:
            return None
        return Account.model_validate(json.loads(row[0]))
