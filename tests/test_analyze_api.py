"""Tests for the analyze endpoint and application wiring."""

from typing import Any, Dict

import httpx
import pytest
from fastapi.testclient import TestClient

from insights.app.api.analyze import get_provider
from insights.app.exceptions import ServiceNotConfiguredError
from insights.app.main import create_app
from insights.app.providers.base import BaseProvider
from insights.app.providers.mock import MOCK_QUOTE, MockProvider
from insights.app.services.rate_gate import RateGate, get_rate_gate


ENTRY = {"title": "Evening", "date": "2024-03-13", "content": "Cooked dinner with friends.", "tags": ["social"]}


class UnreachableProvider(BaseProvider):
    name = "unreachable"

    def __init__(self):
        super().__init__("http://unreachable", "key")

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        raise httpx.ConnectError("connection refused")


@pytest.fixture
def provider():
    return MockProvider()


@pytest.fixture
def app(provider, gate):
    app = create_app()
    app.dependency_overrides[get_provider] = lambda: provider
    app.dependency_overrides[get_rate_gate] = lambda: gate
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


class TestAnalyze:
    """Test POST /api/analyze."""

    def test_quote(self, client, provider):
        resp = client.post("/api/analyze", json={"type": "quote"})

        assert resp.status_code == 200
        assert resp.json() == {"content": MOCK_QUOTE, "type": "quote"}
        assert len(provider.calls) == 1

    def test_weekly(self, client):
        resp = client.post("/api/analyze", json={"type": "weekly", "entries": [ENTRY]})

        assert resp.status_code == 200
        assert '"themes"' in resp.json()["content"]

    def test_entry(self, client):
        resp = client.post("/api/analyze", json={"type": "entry", "entry": ENTRY})

        assert resp.status_code == 200
        assert '"keyThemes"' in resp.json()["content"]

    def test_invalid_json(self, client):
        resp = client.post(
            "/api/analyze", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid JSON in request body"}

    def test_body_not_utf8(self, client):
        resp = client.post(
            "/api/analyze", content=b'{"type": "\xff"}', headers={"Content-Type": "application/json"}
        )

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid JSON in request body"}

    def test_numeric_entry_fields_are_coerced(self, client, provider):
        entry = dict(ENTRY, content=42, tags=[2024, "social"], mood=3)

        resp = client.post("/api/analyze", json={"type": "entry", "entry": entry})

        assert resp.status_code == 200
        prompt = provider.calls[0]["messages"][1]["content"]
        assert "Content: 42" in prompt
        assert "Tags: 2024, social" in prompt
        assert "Mood: 3" in prompt

    def test_malformed_entry_data(self, client, provider):
        resp = client.post("/api/analyze", json={"type": "entry", "entry": "just text"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid entry data"}
        assert provider.calls == []

    def test_malformed_entries_list(self, client):
        resp = client.post("/api/analyze", json={"type": "weekly", "entries": [{"tags": "x"}]})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid entry data"}

    def test_provider_unreachable(self, gate):
        app = create_app()
        app.dependency_overrides[get_provider] = lambda: UnreachableProvider()
        app.dependency_overrides[get_rate_gate] = lambda: gate

        with TestClient(app) as client:
            resp = client.post("/api/analyze", json={"type": "quote"})

        assert resp.status_code == 502
        assert resp.json() == {"error": "AI service unreachable"}

    def test_unknown_type(self, client, provider):
        resp = client.post("/api/analyze", json={"type": "monthly"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid request type"}
        assert provider.calls == []

    def test_weekly_without_entries(self, client, gate):
        resp = client.post("/api/analyze", json={"type": "weekly", "entries": []})

        assert resp.status_code == 400
        assert resp.json() == {"error": "No entries provided"}
        assert gate.snapshot().daily_count == 0

    def test_entry_without_entry(self, client):
        resp = client.post("/api/analyze", json={"type": "entry"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "No entry provided"}

    def test_too_frequent(self, client):
        client.post("/api/analyze", json={"type": "quote"})

        resp = client.post("/api/analyze", json={"type": "quote"})

        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "8"
        assert resp.json() == {
            "error": "Too many requests",
            "retryAfter": 8,
            "quotaExhausted": False,
        }

    def test_daily_limit(self, provider, clock):
        gate = RateGate(requests_per_day=1, clock=clock)
        app = create_app()
        app.dependency_overrides[get_provider] = lambda: provider
        app.dependency_overrides[get_rate_gate] = lambda: gate

        with TestClient(app) as client:
            client.post("/api/analyze", json={"type": "quote"})
            resp = client.post("/api/analyze", json={"type": "quote"})

        assert resp.status_code == 429
        data = resp.json()
        assert data["error"] == "Daily limit reached"
        assert data["quotaExhausted"] is True
        assert data["retryAfter"] > 0

    def test_provider_rate_limited(self, client, provider):
        provider._statuses = [429]

        resp = client.post("/api/analyze", json={"type": "quote"})

        assert resp.status_code == 429
        assert resp.json()["error"] == "Rate limited"
        assert resp.json()["quotaExhausted"] is False

    def test_provider_auth_failure(self, client, provider):
        provider._statuses = [401]

        resp = client.post("/api/analyze", json={"type": "quote"})

        assert resp.status_code == 401
        assert resp.json() == {"error": "Service authentication failed"}

    def test_provider_failure(self, client, provider):
        provider._statuses = [503]

        resp = client.post("/api/analyze", json={"type": "quote"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "AI service unavailable"}

    def test_not_configured(self, gate):
        app = create_app()

        def missing_token():
            raise ServiceNotConfiguredError()

        app.dependency_overrides[get_provider] = missing_token
        app.dependency_overrides[get_rate_gate] = lambda: gate

        with TestClient(app) as client:
            resp = client.post("/api/analyze", json={"type": "quote"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Service not configured"}


class TestStatusAndHealth:
    """Test GET /api/analyze/status and /health."""

    def test_status_after_one_call(self, client, clock):
        client.post("/api/analyze", json={"type": "quote"})
        clock.advance(10)

        resp = client.get("/api/analyze/status")

        assert resp.status_code == 200
        assert resp.json() == {
            "inFlight": False,
            "dailyCount": 1,
            "dailyLimit": 30,
            "dailyResetIn": 24 * 60 * 60 - 10,
            "cooldownRemaining": 0,
        }

    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert "provider" in resp.json()
