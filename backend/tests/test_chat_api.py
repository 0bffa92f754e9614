"""
Tests for chat API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_engine
from tests.conftest import TEST_OTP


class TestChatEndpoint:
    """Test POST /api/chat."""

    def test_missing_session_id(self, client: TestClient):
        response = client.post("/api/chat", json={"message": "hello"})
        assert response.status_code == 400
        assert response.json() == {"error": "Session ID is required"}

    def test_greeting(self, client: TestClient):
        response = client.post("/api/chat", json={"sessionId": "web-1", "message": "Hello"})
        assert response.status_code == 200
        data = response.json()
        assert data == {
            "response": "Hello! How can I help with your delivery?",
            "conversationState": "INITIAL",
        }

    def test_verification_flow(self, client: TestClient, notifier):
        data = client.post("/api/chat", json={"sessionId": "web-1", "message": "AWB789012"}).json()
        assert data["conversationState"] == "AWAITING_OTP"
        assert data["requiresOtp"] is True
        assert "orderDetails" not in data

        data = client.post("/api/chat", json={"sessionId": "web-1", "message": TEST_OTP}).json()
        assert data["conversationState"] == "ORDER_FOUND"

        data = client.post("/api/chat", json={"sessionId": "web-1", "message": "details"}).json()
        assert data["showDetails"] is True
        assert "AWB: AWB789012" in data["orderDetails"]

        data = client.post("/api/chat", json={"sessionId": "web-1", "message": "reschedule"}).json()
        assert data["requiresReschedule"] is True
        assert len(data["rescheduleOptions"]) == 3

        data = client.post("/api/chat", json={"sessionId": "web-1", "message": "3"}).json()
        assert data["whatsappSent"] is True
        assert data["response"] == "Your order has been rescheduled to Sat, Jun 15 | Morning."

    def test_expired_session(self, client: TestClient, clock):
        client.post("/api/chat", json={"sessionId": "web-1", "message": "Hello"})
        clock.advance(121)

        data = client.post("/api/chat", json={"sessionId": "web-1", "message": "Hello"}).json()
        assert data["conversationState"] == "SESSION_EXPIRED"
        assert data["sessionExpired"] is True
        assert data["endConversation"] is True
        assert data["requiresAwb"] is False

    def test_engine_error_returns_500(self, client: TestClient):
        class BrokenEngine:
            async def process_message(self, session_id, message):
                raise RuntimeError("boom")

        client.app.dependency_overrides[get_engine] = lambda: BrokenEngine()

        response = client.post("/api/chat", json={"sessionId": "web-1", "message": "Hello"})
        assert response.status_code == 500
        assert response.json() == {
            "error": "Internal server error",
            "response": "I'm having trouble processing your request. Please try again.",
        }


class TestSessionEndpoints:
    """Test session maintenance endpoints."""

    def test_reset_session(self, client: TestClient, session_store, order_store):
        client.post("/api/chat", json={"sessionId": "web-1", "message": "AWB789012"})
        client.post("/api/chat", json={"sessionId": "web-1", "message": TEST_OTP})
        client.post("/api/chat", json={"sessionId": "web-1", "message": "reschedule"})
        client.post("/api/chat", json={"sessionId": "web-1", "message": "1"})
        assert order_store.get_sync("AWB789012").rescheduled is True

        response = client.post("/api/reset-session/web-1")

        assert response.status_code == 200
        assert response.json() == {"message": "Session and all orders reset successfully"}
        assert session_store.get("web-1") is None
        assert order_store.get_sync("AWB789012").rescheduled is False

    def test_reset_unknown_session(self, client: TestClient):
        response = client.post("/api/reset-session/never-seen")
        assert response.status_code == 200

    def test_force_expiration(self, client: TestClient):
        client.post("/api/chat", json={"sessionId": "web-1", "message": "Hello"})

        response = client.post("/api/test-session-expiration/web-1")
        assert response.status_code == 200
        assert response.json()["sessionExpired"] is True

        data = client.post("/api/chat", json={"sessionId": "web-1", "message": "Hello"}).json()
        assert data["conversationState"] == "SESSION_EXPIRED"

    def test_force_expiration_unknown_session(self, client: TestClient):
        response = client.post("/api/test-session-expiration/missing")
        assert response.json()["response"] == "Session not found."

    def test_force_expiration_disabled_outside_development(self, client: TestClient, monkeypatch):
        from app.core import settings

        monkeypatch.setattr(settings, "APP_ENV", "production")
        response = client.post("/api/test-session-expiration/web-1")
        assert response.status_code == 404


class TestHealth:
    """Test health endpoint."""

    def test_health(self, client: TestClient):
        client.post("/api/chat", json={"sessionId": "web-1", "message": "Hello"})

        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["active_sessions"] == 1


@pytest.mark.parametrize("message", ["", "   "])
def test_blank_message(client: TestClient, message):
    response = client.post("/api/chat", json={"sessionId": "web-1", "message": message})
    assert response.status_code == 200
    assert response.json()["response"] == "How can I help with your delivery today?"


@pytest.mark.parametrize("code", ["４８２１９３", "٤٨٢١٩٣"])
def test_non_ascii_digit_otp_reprompts(client: TestClient, code):
    client.post("/api/chat", json={"sessionId": "web-1", "message": "AWB789012"})

    response = client.post("/api/chat", json={"sessionId": "web-1", "message": code})

    assert response.status_code == 200
    data = response.json()
    assert data["conversationState"] == "AWAITING_OTP"
    assert data["requiresOtp"] is True
    assert data["response"] == "Please enter the 6-digit OTP sent to your WhatsApp number."
