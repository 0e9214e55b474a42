"""Confirm a pending account's email so it can sign in.

Usage: uv run python bin/confirm-email.py <email>

Only needed when AUTH_REQUIRE_EMAIL_CONFIRMATION is enabled.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from shared.auth.identity import confirm_account_email
from shared.auth.service import normalize_email
from shared.auth.settings import AuthSettings
from shared.db import Database, SqliteAccountRepository
from shared.errors import MarketplaceError


async def main() -> None:
    if len(sys.argv) != 2:
        print(f"Usage: {sys.argv[0]} <email>")
        sys.exit(1)

    email = normalize_email(sys.argv[1])
    auth_settings = AuthSettings()

    db = Database(auth_settings.database_path)
    db.connect()

    try:
        try:
            account = await confirm_account_email(SqliteAccountRepository(db), email)
        except MarketplaceError as e:
            print(f"Error: {e.user_message}")
            sys.exit(1)

        print(f"Email confirmed: {account.email} (id: {account.user_id})")
    finally:
        db.close()


if __name__ == "__main__":
    asyncio.run(main())
