"""
Integration tests for /api/scores endpoints
"""

import pytest

from app.core.dependencies import get_ranking_service, get_rate_limiter
from app.core.rate_limiter import RateLimiter
from app.main import app
from app.repositories.errors import ConflictError
from app.services.ranking_service import RankingService


class TestSubmitScore:
    """Test suite for POST /api/scores."""

    @pytest.mark.asyncio
    async def test_submit_first_score(self, client, auth_headers, sample_score_payload):
        """Test an empty chart ranks the first score at 1."""
        # Act
        response = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert data["ok"] is True
        assert data["rank"] == 1
        assert data["id"]

    @pytest.mark.asyncio
    async def test_submit_without_key(self, client, sample_score_payload, test_db):
        """Test POST /api/scores without X-App-Key"""
        response = await client.post("/api/scores", json=sample_score_payload)

        assert response.status_code == 401
        assert await test_db["scores"].count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_submit_with_wrong_key(self, client, sample_score_payload):
        """Test POST /api/scores with a wrong X-App-Key"""
        response = await client.post(
            "/api/scores",
            json=sample_score_payload,
            headers={"X-App-Key": "not-the-key"}
        )

        assert response.status_code == 401
        assert "Unauthorized" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_submit_banned_nickname(self, client, auth_headers, sample_score_payload, test_db):
        """Test nickname=admin is rejected with the rule name and nothing is stored."""
        sample_score_payload["nickname"] = "admin"

        response = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["rule"] == "nickname_content"
        assert "banned" in detail["message"]
        assert await test_db["scores"].count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_submit_out_of_range_score(self, client, auth_headers, sample_score_payload):
        """Test a score above 1_000_000 is rejected."""
        sample_score_payload["score"] = 2_000_000

        response = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["rule"] == "score_range"

    @pytest.mark.asyncio
    async def test_submit_records_caller_identity(self, client, auth_headers, sample_score_payload, test_db):
        """Test the ledger gets the transport user-agent and a hash, and the response hides them."""
        response = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)

        assert "integrity_hash" not in response.text
        record = await test_db["scores"].find_one({})
        assert record["user_agent"] == "rhythm-client/2.1"
        assert len(record["integrity_hash"]) == 64

    @pytest.mark.asyncio
    async def test_leaderboard_failure_returns_record_id(
        self,
        client,
        auth_headers,
        sample_score_payload,
        test_db
    ):
        """Test a failed ranking update still reports the ledgered id."""
        class FailingRankingService(RankingService):
            async def submit_entry(self, chart_id, entry):
                raise ConflictError("lost every race")

        app.dependency_overrides[get_ranking_service] = lambda: FailingRankingService(test_db)

        response = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)

        assert response.status_code == 500
        record = await test_db["scores"].find_one({})
        assert response.json()["detail"]["id"] == str(record["_id"])

    @pytest.mark.asyncio
    async def test_rate_limited(self, client, auth_headers, sample_score_payload):
        """Test requests over the per-IP limit get 429."""
        limiter = RateLimiter(max_requests=2, window_seconds=60)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter

        first = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)
        second = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)
        third = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)

        assert first.status_code == 201
        assert first.headers["RateLimit-Remaining"] == "1"
        assert second.status_code == 201
        assert third.status_code == 429
        assert "Retry-After" in third.headers

    @pytest.mark.asyncio
    async def test_submit_oversized_numbers(self, client, auth_headers, sample_score_payload, test_db):
        """Test numbers beyond 64-bit integers are stored instead of failing the write."""
        sample_score_payload["maxCombo"] = 10 ** 20
        sample_score_payload["clientAt"] = 1e30

        response = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)

        assert response.status_code == 201
        record = await test_db["scores"].find_one({})
        assert record["max_combo"] == 1e20
        assert record["client_at"] < 2 ** 63

    @pytest.mark.asyncio
    async def test_rate_limit_headers_on_errors(self, client, auth_headers, sample_score_payload):
        """Test RateLimit-* headers are sent on rejected submissions too."""
        limiter = RateLimiter(max_requests=5, window_seconds=60)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter
        sample_score_payload["nickname"] = "admin"

        response = await client.post("/api/scores", json=sample_score_payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.headers["RateLimit-Limit"] == "5"
        assert response.headers["RateLimit-Remaining"] == "4"
        assert "RateLimit-Reset" in response.headers


class TestGetRanking:
    """Test suite for GET /api/scores."""

    @pytest.mark.asyncio
    async def test_missing_chart_id(self, client, auth_headers):
        """Test chartId is required."""
        response = await client.get("/api/scores", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["rule"] == "chart_id"

    @pytest.mark.asyncio
    async def test_unknown_chart_is_empty(self, client, auth_headers):
        """Test a chart with no submissions returns an empty top."""
        response = await client.get("/api/scores?chartId=never-played", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "top": []}

    @pytest.mark.asyncio
    async def test_read_after_submissions(self, client, auth_headers, sample_score_payload):
        """Test the read path returns camelCase entries in rank order."""
        for nickname, score in [("Ace", 500), ("Bee", 900), ("Cee", 700), ("Ace", 950)]:
            payload = {**sample_score_payload, "nickname": nickname, "score": score}
            response = await client.post("/api/scores", json=payload, headers=auth_headers)
            assert response.status_code == 201

        response = await client.get(
            "/api/scores",
            params={"chartId": sample_score_payload["chartId"]},
            headers=auth_headers
        )

        assert response.status_code == 200
        top = response.json()["top"]
        assert [(e["nickname"], e["score"]) for e in top] == [("Ace", 950), ("Bee", 900), ("Cee", 700)]
        assert top[0]["maxCombo"] == 312
        assert "createdAt" in top[0]

    @pytest.mark.asyncio
    async def test_limit(self, client, auth_headers, sample_score_payload):
        """Test limit slices the top and oversized limits are capped."""
        for i in range(5):
            payload = {**sample_score_payload, "nickname": f"p{i}", "score": 100 + i}
            await client.post("/api/scores", json=payload, headers=auth_headers)

        chart_id = sample_score_payload["chartId"]
        limited = await client.get(f"/api/scores?chartId={chart_id}&limit=2", headers=auth_headers)
        capped = await client.get(f"/api/scores?chartId={chart_id}&limit=1000", headers=auth_headers)

        assert [e["nickname"] for e in limited.json()["top"]] == ["p4", "p3"]
        assert len(capped.json()["top"]) == 5

    @pytest.mark.asyncio
    async def test_read_requires_key(self, client):
        """Test reads go through the same key gate."""
        response = await client.get("/api/scores?chartId=neon-rush:hard")

        assert response.status_code == 401
