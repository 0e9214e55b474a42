"""Grant the admin flag to an existing account's profile.

Usage: uv run python bin/make-admin.py <email>

Creates the profile first when the account has none yet.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from shared.auth.models import Profile
from shared.auth.service import normalize_email, username_seed
from shared.auth.settings import AuthSettings
from shared.db import Database, SqliteAccountRepository, SqliteProfileRepository
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
        accounts = SqliteAccountRepository(db)
        profiles = SqliteProfileRepository(db)

        account = await accounts.get_by_email(email)
        if account is None:
            print(f"Error: no account for {email}")
            sys.exit(1)

        try:
            profile = await profiles.get_profile(account.user_id)
            if profile is None:
                profile = Profile(id=account.user_id, username=username_seed(account.email, account.user_id))
            profile = await profiles.upsert_profile(profile.model_copy(update={"is_admin": True}))
        except MarketplaceError as e:
            print(f"Error: {e.user_message}")
            sys.exit(1)

        print(f"Admin granted: {profile.username} (id: {profile.id})")
    finally:
        db.close()


if __name__ == "__main__":
    asyncio.run(main())
