"""
Fixtures for integration tests
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.database import Database
from app.core.dependencies import get_rate_limiter


@pytest.fixture
async def client(test_db):
    """
    HTTP client for testing API endpoints.

    Points the Database singleton at the test database and starts every
    test with an empty rate limiter.
    """
    # Store original db connection
    original_db = Database.db
    Database.db = test_db
    get_rate_limiter().reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    # Restore original db
    Database.db = original_db
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Headers with the shared client key."""
    return {"X-App-Key": os.environ["APP_API_KEY"], "User-Agent": "rhythm-client/2.1"}
