"""
Integration tests for the event log and health endpoints.
"""

from unittest.mock import patch

from donation_server.config import settings
from donation_server.storage import event_log

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


class TestEventsEndpoint:
    """Tests for GET /api/v1/events."""

    def test_requires_admin_key(self, test_client):
        assert test_client.get("/api/v1/events").status_code == 403
        assert test_client.get("/api/v1/events", headers={"X-Admin-Key": "wrong"}).status_code == 403

    def test_disabled_without_configured_key(self, test_client):
        with patch.object(settings, "admin_api_key", ""):
            response = test_client.get("/api/v1/events", headers=ADMIN_HEADERS)

        assert response.status_code == 403

    def test_lists_entries_oldest_first(self, test_client):
        event_log.append("+15551234567", "awaiting_amount", "10")
        event_log.append("+15551234567", "awaiting_card", "4111111111111111")

        response = test_client.get("/api/v1/events", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["capacity"] == 100
        assert data["count"] == 2
        assert [e["step"] for e in data["entries"]] == ["awaiting_amount", "awaiting_card"]
        assert data["entries"][1]["data"] == "************1111"
        assert data["entries"][0]["correlation_id"] == "+15551234567"

    def test_reflects_sms_traffic(self, test_client):
        test_client.post("/api/v1/webhook/sms", data={"From": "+15551234567", "Body": "hello"})

        data = test_client.get("/api/v1/events/", headers=ADMIN_HEADERS).json()

        assert data["count"] == 1
        assert data["entries"][0]["error"] == "No amount found"


class TestHealthEndpoints:
    """Tests for health endpoints."""

    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_under_api_prefix(self, test_client):
        assert test_client.get("/api/v1/health").status_code == 200

    def test_live(self, test_client):
        assert test_client.get("/health/live").json()["status"] == "alive"

    def test_ready_with_gateway_key(self, test_client):
        data = test_client.get("/health/ready").json()

        assert data["ready"] is True
        assert data["checks"]["cardknox"]["configured"] is True

    def test_root(self, test_client):
        data = test_client.get("/").json()

        assert data["sms_webhook"] == "/api/v1/webhook/sms"
        assert data["voice_webhook"] == "/api/v1/voice"
