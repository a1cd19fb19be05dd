"""
Pytest fixtures and configuration for all tests.
"""

import os

# Settings exige estas variables; se fijan antes de importar la app
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("APP_API_KEY", "test-app-key")

import pytest
from typing import AsyncGenerator
from mongomock_motor import AsyncMongoMockClient

from app.models.ranking import RankEntry

TEST_DB_NAME = "rhythm_ranking_test"


@pytest.fixture(scope="function")
async def test_db() -> AsyncGenerator:
    """
    Provide a clean in-memory database for each test.

    mongomock_motor speaks the motor API, so repositories run unchanged.
    """
    client = AsyncMongoMockClient()
    db = client[TEST_DB_NAME]

    yield db

    # Cleanup: drop all collections after test
    collection_names = await db.list_collection_names()
    for collection_name in collection_names:
        await db[collection_name].drop()


@pytest.fixture
def sample_score_payload():
    """Sample score submission as the game client sends it."""
    return {
        "nickname": "Ace",
        "chartId": "neon-rush:hard",
        "score": 500,
        "accuracy": 97.25,
        "maxCombo": 312,
        "clientAt": 1_700_000_000_000,
    }


@pytest.fixture
def make_entry():
    """Factory for RankEntry objects."""
    def _make(nickname: str, score, created_at: int = 0, accuracy=90.0, max_combo=100):
        return RankEntry(
            nickname=nickname,
            score=score,
            accuracy=accuracy,
            max_combo=max_combo,
            created_at=created_at,
        )
    return _make
