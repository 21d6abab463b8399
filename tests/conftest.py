"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.
"""

import os
import sys
import tempfile
from decimal import Decimal

import pytest
import pytest_asyncio

# Test environment must be in place before config is imported anywhere
_TEST_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["RUNTIME_ENVIRONMENT"] = "TEST"
os.environ["API_BASE_URL"] = "http://127.0.0.1:1/api"
os.environ["HTTP_TIMEOUT_SECONDS"] = "5"
os.environ["DATA_DIR"] = os.path.join(_TEST_DIR, "data")
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")
os.environ["TAX_RATE_PERCENT"] = "18"
os.environ["STANDARD_SHIPPING_FEE"] = "50"
os.environ["FREE_SHIPPING_THRESHOLD"] = "500"

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from db import create_engine_and_session_maker, create_db_and_tables
from models.product import ProductDTO
from services.commerce_store import CommerceStore
from services.event_bus import EventBus
from services.storage import KeyValueStorage


# ============================================================================
# Storage Fixtures
# ============================================================================

@pytest.fixture
def database_url(tmp_path):
    """SQLite file per test; reopening it simulates an app restart."""
    return f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}"


@pytest_asyncio.fixture
async def session_maker(database_url):
    engine, maker = create_engine_and_session_maker(database_url)
    await create_db_and_tables(engine, maker)
    yield maker
    await engine.dispose()


@pytest.fixture
def storage(session_maker):
    return KeyValueStorage(session_maker)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def store(storage, event_bus):
    return CommerceStore(storage, event_bus)


# ============================================================================
# Catalogue Fixtures
# ============================================================================

@pytest.fixture
def bedsheet():
    """King/queen bedsheet priced at 799 with two colors."""
    return ProductDTO(
        id="P1",
        name="Cotton Bedsheet",
        price=Decimal("799"),
        sizes=["king", "queen"],
        colors=["Ivory", "Sage"],
        type="bedsheet",
        variants=[{"color": "Ivory", "size": "king", "sku": "FF-CB-IV-K"}]
    )


@pytest.fixture
def pillow_cover():
    return ProductDTO(id="P2", name="Pillow Cover", price=Decimal("249"))
