"""Integration tests for search, suggestions, preferences and health endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from marketplace.tests.integration.helpers import new_browser, seed_listings, sign_up
from shared.build_info import APP_VERSION
from shared.dal.models import ListingAttribute, ListingRow

EPOCH = datetime(2025, 3, 1, tzinfo=UTC)


def _listing(index: int, name: str, **overrides) -> ListingRow:
    fields = {
        "id": f"listing-{index:02d}",
        "token_id": index,
        "name": name,
        "price": Decimal(1),
        "creator_id": "creator-x",
        "owner_id": "creator-x",
        "created_at": EPOCH + timedelta(hours=index),
    }
    fields.update(overrides)
    return ListingRow(**fields)


@pytest.fixture
def catalog(client):
    rows = [
        _listing(
            1,
            "Cosmic Cat",
            category="art",
            price=Decimal("1.5"),
            attributes=(ListingAttribute(trait_type="Rarity", value="Rare"),),
        ),
        _listing(2, "Cat Nap", category="photo", price=Decimal("0.2"), is_auction=True),
        _listing(3, "Dog Days", category="art", price=Decimal(3), description="A very good cat-free dog"),
    ]
    rows += [_listing(i, f"Filler {i}", category="misc") for i in range(4, 19)]
    seed_listings(client, rows)
    return rows


class TestSearch:
    def test_default_search_is_newest_first(self, client, catalog):
        response = client.get("/api/search")

        assert response.status_code == 200
        body = response.json()
        assert body["total_count"] == 18
        assert body["total_pages"] == 2
        assert body["current_page"] == 1
        assert len(body["results"]) == 12
        assert body["results"][0]["name"] == "Filler 18"
        assert body["degraded"] is False
        assert body["is_loading"] is False

    def test_second_page(self, client, catalog):
        body = client.get("/api/search", params={"page": 2}).json()

        assert body["current_page"] == 2
        assert len(body["results"]) == 6
        assert body["results"][-1]["name"] == "Cosmic Cat"

    def test_page_beyond_last_shows_last_page(self, client, catalog):
        body = client.get("/api/search", params={"page": 9}).json()

        assert body["current_page"] == 2
        assert body["total_pages"] == 2
        assert len(body["results"]) == 6

    def test_text_search_matches_name_and_description(self, client, catalog):
        body = client.get("/api/search", params={"q": "cat"}).json()

        assert {r["name"] for r in body["results"]} == {"Cosmic Cat", "Cat Nap", "Dog Days"}
        assert body["filters"]["query"] == "cat"
        assert body["recent_searches"] == ["cat"]

    def test_combined_filters(self, client, catalog):
        params = {"category": "art", "price_min": "1", "price_max": "2", "sort_by": "price", "sort_order": "asc"}

        body = client.get("/api/search", params=params).json()

        assert [r["name"] for r in body["results"]] == ["Cosmic Cat"]
        assert body["results"][0]["price"] == "1.5"
        assert body["results"][0]["creator"] == "Unknown"

    def test_auction_and_attribute_filters(self, client, catalog):
        auctions = client.get("/api/search", params={"is_auction": "true"}).json()
        rare = client.get("/api/search", params={"attribute": "Rarity:Rare"}).json()

        assert [r["name"] for r in auctions["results"]] == ["Cat Nap"]
        assert [r["name"] for r in rare["results"]] == ["Cosmic Cat"]

    def test_malformed_price_means_no_bound(self, client, catalog):
        body = client.get("/api/search", params={"price_min": "cheap"}).json()

        assert body["total_count"] == 18

    def test_creator_filter_uses_username(self, client):
        sign_up(client, "alice@example.com", "alice")
        user_id = client.get("/api/auth/session").json()["session"]["user_id"]
        seed_listings(
            client,
            [_listing(1, "Mine", creator_id=user_id, owner_id=user_id), _listing(2, "Theirs")],
            collection=("col-1", "Alice Originals"),
        )

        body = client.get("/api/search", params={"creator": "ALICE"}).json()

        assert [r["name"] for r in body["results"]] == ["Mine"]
        assert body["results"][0]["creator"] == "alice"
        assert body["results"][0]["collection"] == "Alice Originals"

    @pytest.mark.parametrize(
        ("params", "fragment"),
        [
            ({"is_auction": "maybe"}, "is_auction"),
            ({"attribute": "no-colon"}, "attribute"),
            ({"page": "0"}, "page"),
            ({"page": "two"}, "page"),
            ({"sort_by": "popularity"}, "sort_by"),
        ],
    )
    def test_invalid_parameters(self, client, params, fragment):
        response = client.get("/api/search", params=params)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"
        assert any(fragment in e for e in response.json()["errors"])

    def test_store_failure_serves_placeholder_results(self, client, app):
        app.state.db.close()

        body = client.get("/api/search").json()

        assert body["degraded"] is True
        assert body["error"] is None
        assert body["total_count"] == 50
        assert body["total_pages"] == 5
        assert len(body["results"]) == 12
        assert all(r["is_fallback"] for r in body["results"])


class TestDebouncedFilters:
    def test_patch_then_read_state(self, client, catalog):
        response = client.patch("/api/search/filters", json={"query": "dog"})

        assert response.status_code == 202
        assert response.json()["filters"]["query"] == "dog"

        state = client.get("/api/search/state").json()
        assert [r["name"] for r in state["results"]] == ["Dog Days"]
        assert state["current_page"] == 1

    def test_patches_merge(self, client, catalog):
        client.patch("/api/search/filters", json={"category": "art"})
        client.patch("/api/search/filters", json={"sort_by": "name", "sort_order": "asc"})

        state = client.get("/api/search/state").json()

        assert state["filters"]["category"] == "art"
        assert [r["name"] for r in state["results"]] == ["Cosmic Cat", "Dog Days"]

    def test_unknown_field_rejected(self, client):
        response = client.patch("/api/search/filters", json={"colour": "red"})

        assert response.status_code == 400
        assert response.json()["errors"][0].startswith("colour:")

    def test_self_field_rejected(self, client):
        response = client.patch("/api/search/filters", json={"self": 1})

        assert response.status_code == 400
        assert response.json()["errors"][0].startswith("self:")

    def test_invalid_body(self, client):
        response = client.patch("/api/search/filters", content=b"[1, 2]")

        assert response.status_code == 400

    def test_state_without_pending_search(self, client):
        body = client.get("/api/search/state").json()

        assert body["results"] == []
        assert body["total_count"] == 0

    def test_fresh_client_state_has_first_page(self, client, catalog):
        body = client.get("/api/search/state").json()

        assert len(body["results"]) == 12
        assert body["total_count"] == 18
        assert body["total_pages"] == 2
        assert body["current_page"] == 1
        assert body["is_loading"] is False

    def test_search_state_is_per_client(self, client, catalog):
        client.get("/api/search", params={"q": "dog"})
        new_browser(client)

        body = client.get("/api/search/state").json()

        assert body["filters"]["query"] == ""
        assert body["recent_searches"] == []


class TestSuggestions:
    def test_matching_names(self, client, catalog):
        body = client.get("/api/search/suggestions", params={"q": "cat"}).json()

        assert set(body["suggestions"]) == {"Cosmic Cat", "Cat Nap"}

    def test_short_query(self, client, catalog):
        body = client.get("/api/search/suggestions", params={"q": "c"}).json()

        assert body == {"suggestions": []}

    def test_capped_at_five(self, client, catalog):
        body = client.get("/api/search/suggestions", params={"q": "filler"}).json()

        assert len(body["suggestions"]) == 5


class TestPreferences:
    def test_defaults(self, client):
        assert client.get("/api/preferences").json() == {"dark_mode": False, "wallet_connected": False}

    def test_update_and_read_back(self, client):
        response = client.put("/api/preferences", json={"dark_mode": True, "wallet_connected": True})

        assert response.json() == {"dark_mode": True, "wallet_connected": True}
        assert client.get("/api/preferences").json() == {"dark_mode": True, "wallet_connected": True}

    def test_partial_update(self, client):
        client.put("/api/preferences", json={"dark_mode": True})

        response = client.put("/api/preferences", json={"wallet_connected": False})

        assert response.json() == {"dark_mode": True, "wallet_connected": False}

    def test_rejects_unknown_and_non_boolean(self, client):
        response = client.put("/api/preferences", json={"dark_mode": "yes", "font": "big"})

        assert response.status_code == 400
        assert response.json()["errors"] == ["font: unknown preference", "dark_mode: must be a boolean"]

    def test_preferences_are_per_client(self, client):
        client.put("/api/preferences", json={"dark_mode": True})
        new_browser(client)

        assert client.get("/api/preferences").json()["dark_mode"] is False


class TestHealthAndHeaders:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["version"] == APP_VERSION

    def test_security_headers_on_api(self, client):
        response = client.get("/api/search/state")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
