"""Tests for the dashboard API endpoints."""

from fastapi.testclient import TestClient

from conftest import StubGenerator
from tillsight.server import create_app


class TestHealth:
    """Root health check."""

    def test_health_check(self, make_service):
        client = TestClient(create_app(make_service()))

        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"status": "online", "system": "Tillsight"}


class TestAiInsightsEndpoint:
    """GET /api/dashboard/ai-insights"""

    URL = "/api/dashboard/ai-insights"

    def make_client(self, make_service, generator=None, **settings) -> TestClient:
        self.service = make_service(generator, **settings)
        return TestClient(create_app(self.service))

    def test_generated_then_cached(self, make_service):
        client = self.make_client(make_service)

        first = client.get(self.URL, params={"range": "week"}, headers={"X-User-Id": "u1"})
        second = client.get(self.URL, params={"range": "week"}, headers={"X-User-Id": "u1"})

        assert first.status_code == 200
        data = first.json()
        assert data["status"] == "success"
        assert data["cached"] is False
        assert data["provider"] == "external"
        assert data["model"] == "stub-model"
        assert data["available"] is True
        assert data["aiInsights"]["anomalyScore"] == "high"
        assert data["expiresAt"] - data["generatedAt"] == 30 * 60 * 1000
        assert "providerAttempted" not in data
        assert second.json()["cached"] is True
        assert second.json()["generatedAt"] == data["generatedAt"]

    def test_unconfigured_returns_rule_based_insights(self, make_service):
        client = self.make_client(make_service, StubGenerator(configured=False))

        response = client.get(self.URL, headers={"X-User-Id": "u1"})

        assert response.status_code == 200
        data = response.json()
        assert data["available"] is False
        assert data["error"] == "NotConfigured"
        assert data["provider"] == "rule_based"
        assert data["providerAttempted"] == "external"
        assert data["generatedAt"] is None
        assert data["aiInsights"]["insights"][0]["title"] == "Low Success Rate"

    def test_forced_unconfigured_returns_503_with_fallback(self, make_service):
        client = self.make_client(make_service, StubGenerator(configured=False))

        response = client.get(self.URL, params={"force": "true"}, headers={"X-User-Id": "u1"})

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "error"
        assert data["error"] == "NotConfigured"
        assert data["message"]
        assert data["aiInsights"]["anomalyScore"] == "high"

    def test_force_only_when_true(self, make_service, clock):
        generator = StubGenerator()
        client = self.make_client(make_service, generator)
        client.get(self.URL, headers={"X-User-Id": "u1"})

        client.get(self.URL, params={"force": "1"}, headers={"X-User-Id": "u1"})
        assert generator.calls == 1

        clock.advance(1)

        response = client.get(self.URL, params={"force": "TRUE"}, headers={"X-User-Id": "u1"})
        assert response.json()["cached"] is False
        assert generator.calls == 2

    def test_rate_limited_returns_429(self, make_service, clock):
        client = self.make_client(make_service, gemini_rate_limit_max=1)
        client.get(self.URL, params={"force": "true"}, headers={"X-User-Id": "u1"})
        clock.advance(15)

        response = client.get(self.URL, params={"force": "true"}, headers={"X-User-Id": "u1"})

        assert response.status_code == 429
        data = response.json()
        assert data["error"] == "RateLimited"
        assert data["retryAfterMs"] == 45_000
        assert data["provider"] == "rule_based"

    def test_forced_schema_mismatch_returns_502(self, make_service):
        generator = StubGenerator(text='{"anomalyScore": "medium", "insights": []}')
        client = self.make_client(make_service, generator)

        response = client.get(self.URL, params={"force": "true"}, headers={"X-User-Id": "u1"})

        assert response.status_code == 502
        assert response.json()["error"] == "SchemaMismatch"

    def test_missing_user_header(self, make_service):
        client = self.make_client(make_service)

        response = client.get(self.URL)

        assert response.status_code == 422

    def test_unknown_user_returns_503(self, make_service):
        client = self.make_client(make_service, StubGenerator(configured=False))

        response = client.get(self.URL, headers={"X-User-Id": "nobody"})

        assert response.status_code == 503
        assert response.json()["status"] == "error"
