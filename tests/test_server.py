"""Tests for the HTTP API.

Feature: threadsmith
Tests request/response shapes and error mapping for every endpoint using
FastAPI's TestClient and a scripted model gateway.
"""

import pytest
from fastapi.testclient import TestClient
from tenacity import wait_none

from threadsmith.agent.thread_assembler import ThreadAssembler
from threadsmith.config import Settings
from threadsmith.engines.llm_gateway import ProviderUnavailableError
from threadsmith.server import create_app


THREE_POSTS = (
    "TWEET: 1/3 Indexes speed up reads on large tables\n"
    "TWEET: 2/3 They cost extra work on every write\n"
    "TWEET: 3/3 Measure with EXPLAIN before adding one"
)


class ScriptedGateway:
    provider_name = "scripted"

    def __init__(self, reply):
        self.reply = reply
        self.calls = 0

    async def chat(self, messages):
        self.calls += 1
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply


def _client(reply=THREE_POSTS, settings=None):
    settings = settings or Settings(search_enabled=False)
    gateway = ScriptedGateway(reply)

    def factory(app_settings):
        assembler = ThreadAssembler(gateway, settings=app_settings)
        assembler.retry_wait = wait_none()
        return assembler

    client = TestClient(create_app(settings, assembler_factory=factory), raise_server_exceptions=False)
    return client, gateway


# Feature: threadsmith, Property 29: HTTP Contract
class TestGenerateThreadEndpoint:
    """Tests for POST /api/generate-thread."""

    def test_returns_thread(self):
        client, _ = _client()

        response = client.post("/api/generate-thread", json={"topic": "database indexes", "count": 3})

        assert response.status_code == 200
        thread = response.json()["thread"]
        assert thread["topic"] == "database indexes"
        assert [p["id"] for p in thread["posts"]] == ["post-1", "post-2", "post-3"]
        assert thread["posts"][0]["totalCount"] == 3
        assert thread["posts"][0]["characterLength"] == len(thread["posts"][0]["content"])
        assert "generatedAt" in thread
        assert thread["metadata"]["provider"] == "scripted"

    @pytest.mark.parametrize("body", [{}, {"topic": ""}, {"topic": "   "}])
    def test_missing_topic_is_400(self, body):
        client, gateway = _client()

        response = client.post("/api/generate-thread", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Topic is required"}
        assert gateway.calls == 0

    def test_malformed_body_is_400(self):
        client, _ = _client()

        response = client.post(
            "/api/generate-thread",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}

    def test_gateway_failure_is_500_with_troubleshooting(self):
        client, _ = _client(ProviderUnavailableError("ollama", "Connection refused"))

        response = client.post("/api/generate-thread", json={"topic": "indexes"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Connection refused"
        assert "ollama serve" in body["troubleshooting"]

    def test_invalid_count_uses_default(self):
        client, _ = _client()

        response = client.post("/api/generate-thread", json={"topic": "indexes", "count": "lots"})

        assert response.status_code == 200
        assert response.json()["thread"]["metadata"]["requestedCount"] == 6


class TestAnalyzeTopicEndpoint:
    """Tests for POST /api/analyze-topic."""

    def test_returns_analysis(self):
        client, _ = _client('{"intention": "Explain joins", "isOnTopic": true}')

        response = client.post("/api/analyze-topic", json={"topic": "SQL joins", "context": "for juniors"})

        assert response.status_code == 200
        body = response.json()
        assert body["intention"] == "Explain joins"
        assert body["isOnTopic"] is True
        assert body["domain"] == "database"
        assert body["fallbackToOriginal"] is False

    def test_gateway_failure_still_answers(self):
        client, _ = _client(ProviderUnavailableError("ollama"))

        response = client.post("/api/analyze-topic", json={"topic": "SQL joins"})

        assert response.status_code == 200
        assert response.json()["fallbackToOriginal"] is True

    def test_missing_topic_is_400(self):
        client, _ = _client()
        assert client.post("/api/analyze-topic", json={}).status_code == 400


class TestGenerateWithContextEndpoint:
    """Tests for POST /api/generate-with-context."""

    def test_returns_enriched_thread(self):
        client, _ = _client()

        response = client.post(
            "/api/generate-with-context",
            json={"topic": "SQL isolation", "refinedIntention": "Explain anomalies", "domain": "database", "count": 3},
        )

        assert response.status_code == 200
        metadata = response.json()["thread"]["metadata"]
        assert metadata["enriched"] is True
        assert metadata["searchResultCount"] == 0
        assert metadata["acceptedCount"] == 3


class TestRegeneratePostEndpoint:
    """Tests for POST /api/regenerate-post."""

    def test_returns_rewritten_post(self):
        client, _ = _client("A sharper take on composite indexes")

        response = client.post("/api/regenerate-post", json={"id": "post-2", "content": "Indexes are good"})

        assert response.status_code == 200
        post = response.json()["post"]
        assert post["id"] == "post-2"
        assert post["position"] == 2
        assert post["content"] == "A sharper take on composite indexes"

    @pytest.mark.parametrize("body", [{"id": "post-1"}, {"id": "post-1", "content": "  "}])
    def test_missing_content_is_400(self, body):
        client, gateway = _client()

        response = client.post("/api/regenerate-post", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Post content is required"}
        assert gateway.calls == 0


class TestHealthAndErrors:
    """Tests for health reporting and unhandled errors."""

    def test_health(self):
        client, _ = _client(settings=Settings(llm_provider="claude", environment="staging"))

        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["environment"] == "staging"
        assert body["provider"] == "anthropic"
        assert body["timestamp"]

    def test_unhandled_error_is_500(self):
        def broken_factory(settings):
            raise RuntimeError("wiring failed")

        client = TestClient(
            create_app(Settings(), assembler_factory=broken_factory),
            raise_server_exceptions=False,
        )

        response = client.post("/api/generate-thread", json={"topic": "indexes"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
