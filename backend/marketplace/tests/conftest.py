"""Shared fixtures for marketplace tests."""

import pytest

from marketplace.tests.fakes import FakeListingRepository, make_row
from shared.storage import MemoryStorage


@pytest.fixture
def listings():
    return FakeListingRepository([make_row(i) for i in range(1, 31)])


@pytest.fixture
def storage():
    return MemoryStorage()
