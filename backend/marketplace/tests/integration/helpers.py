"""Request helpers for marketplace integration tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from starlette.testclient import TestClient

    from shared.dal.models import ListingRow

PASSWORD = "Sup3rSecret"
ADMIN_EMAIL = "boss@example.com"


def sign_up(client: TestClient, email: str, username: str, password: str = PASSWORD):
    return client.post("/api/auth/signup", json={"email": email, "password": password, "username": username})


def sign_in(client: TestClient, email: str, password: str = PASSWORD):
    return client.post("/api/auth/signin", json={"email": email, "password": password})


def new_browser(client: TestClient) -> None:
    """Drop the client cookie so the next request gets a fresh client context."""
    client.cookies.clear()


def seed_listings(client: TestClient, rows: Iterable[ListingRow], *, collection: tuple[str, str] | None = None) -> None:
    """Insert listings through the app's own repository on the client's event loop."""
    repo = client.app.state.listings

    async def _seed() -> None:
        collection_id = None
        if collection is not None:
            collection_id, name = collection
            await repo.create_collection(collection_id, name)
        for row in rows:
            await repo.create_listing(row, collection_id=collection_id)

    client.portal.call(_seed)
