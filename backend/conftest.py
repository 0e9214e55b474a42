"""Root conftest: load test environment variables, configure structlog and provide store fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.db import Database, SqliteAccountRepository, SqliteListingRepository, SqliteProfileRepository
from shared.logging import shared_processors

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# Route structlog through stdlib logging so caplog works in tests.
structlog.configure(
    processors=shared_processors(),
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Prevent context leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "test.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def account_repo(db):
    return SqliteAccountRepository(db)


@pytest.fixture
def profile_repo(db):
    return SqliteProfileRepository(db)


@pytest.fixture
def listing_repo(db):
    return SqliteListingRepository(db)
