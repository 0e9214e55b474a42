"""Deterministic placeholder results served while the listing store is unavailable."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

from marketplace.search.models import SearchResult
from shared.dal.models import ListingAttribute

FALLBACK_CONTRACT_ADDRESS = "0x1234567890123456789012345678901234567890"
# Fixed reference time so repeated fallbacks render identically
FALLBACK_EPOCH = datetime(2024, 1, 1, tzinfo=UTC)

_RARITIES = ("Common", "Rare", "Epic", "Legendary")
_COLORS = ("Red", "Blue", "Green", "Purple")


def fallback_result(index: int) -> SearchResult:
    """Build the 1-based ``index``-th placeholder listing."""
    cycle = (index - 1) % 4
    is_auction = (index - 1) % 4 == 0
    return SearchResult(
        id=f"mock-{index}",
        token_id=index,
        contract_address=FALLBACK_CONTRACT_ADDRESS,
        name=f"Mock NFT #{index}",
        description=f"This is a mock NFT for testing purposes. Item {index} in the collection.",
        image=f"https://picsum.photos/400/400?random={index}",
        price=Decimal("0.1") + Decimal("0.75") * (index - 1),
        creator=f"Creator{index}",
        owner=f"Owner{index}",
        creator_id=f"creator-{index}",
        owner_id=f"owner-{index}",
        collection=f"Collection {(index - 1) // 3 + 1}" if (index - 1) % 3 == 0 else None,
        is_auction=is_auction,
        auction_end_time=FALLBACK_EPOCH + timedelta(days=1) if is_auction else None,
        likes=(index * 37) % 100,
        views=(index * 131) % 1000,
        attributes=(
            ListingAttribute(trait_type="Rarity", value=_RARITIES[cycle]),
            ListingAttribute(trait_type="Color", value=_COLORS[cycle]),
        ),
        created_at=FALLBACK_EPOCH - timedelta(days=index),
        is_fallback=True,
    )


def fallback_results(count: int) -> tuple[SearchResult, ...]:
    return tuple(fallback_result(i) for i in range(1, count + 1))
