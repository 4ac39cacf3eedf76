"""
Tests for the voice/SMS API.
"""

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from voicelink.telephony.mock_adapter import MockTelephonyAdapter

TWIML_URL = "https://voicelink.example.org/api/twiml/main-menu"


class TestMakeCall:
    def test_success(self, client: TestClient, mock_provider: MockTelephonyAdapter) -> None:
        response = client.post(
            "/api/voice/call",
            json={"toNumber": "+9779862478859", "twimlUrl": TWIML_URL},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "callSid": "MOCK_CALL_000001",
            "to": "+9779862478859",
            "status": "queued",
        }
        last = mock_provider.get_last_call()
        assert last is not None
        assert last.twiml_url == TWIML_URL

    def test_missing_number(self, client: TestClient, mock_provider: MockTelephonyAdapter) -> None:
        response = client.post("/api/voice/call", json={"twimlUrl": TWIML_URL})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "toNumber is required"}
        assert mock_provider.calls == []

    def test_invalid_number(self, client: TestClient) -> None:
        response = client.post(
            "/api/voice/call", json={"toNumber": "0012", "twimlUrl": TWIML_URL}
        )

        assert response.status_code == 400
        assert "E.164" in response.json()["message"]

    def test_invalid_twiml_url(self, client: TestClient) -> None:
        response = client.post(
            "/api/voice/call", json={"toNumber": "+14155551234", "twimlUrl": "main-menu"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid TwiML URL format"

    def test_provider_failure(
        self,
        client: TestClient,
        mock_provider: MockTelephonyAdapter,
    ) -> None:
        mock_provider.configure_failure(error_message="Twilio is down", error_code="21210")

        response = client.post(
            "/api/voice/call",
            json={"toNumber": "+14155551234", "twimlUrl": TWIML_URL},
        )

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Twilio is down"}


class TestSendSms:
    def test_success(self, client: TestClient, mock_provider: MockTelephonyAdapter) -> None:
        response = client.post(
            "/api/voice/sms",
            json={"toNumber": "+14155551234", "message": "Rice is 50 today"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["messageSid"] == "MOCK_SMS_000001"
        assert body["status"] == "queued"
        assert mock_provider.messages[0].body == "Rice is 50 today"

    def test_empty_message(self, client: TestClient) -> None:
        response = client.post(
            "/api/voice/sms", json={"toNumber": "+14155551234", "message": "  "}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Message cannot be empty"

    def test_message_too_long(self, client: TestClient) -> None:
        response = client.post(
            "/api/voice/sms",
            json={"toNumber": "+14155551234", "message": "x" * 1601},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Message cannot exceed 1600 characters"


class TestLookups:
    def test_call_details(self, client: TestClient) -> None:
        client.post(
            "/api/voice/call",
            json={"toNumber": "+14155551234", "twimlUrl": TWIML_URL},
        )

        response = client.get("/api/voice/call/MOCK_CALL_000001")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["callSid"] == "MOCK_CALL_000001"
        assert body["to"] == "+14155551234"
        assert body["from"] == "+15005550006"
        assert body["status"] == "completed"
        assert body["direction"] == "outbound-api"
        assert "startTime" in body
        assert "endTime" in body

    def test_message_details(self, client: TestClient) -> None:
        client.post("/api/voice/sms", json={"toNumber": "+14155551234", "message": "hi"})

        response = client.get("/api/voice/message/MOCK_SMS_000001")

        assert response.status_code == 200
        body = response.json()
        assert body["messageSid"] == "MOCK_SMS_000001"
        assert body["body"] == "hi"
        assert body["from"] == "+15005550006"
        assert "dateSent" in body

    def test_unknown_call(self, client: TestClient) -> None:
        response = client.get("/api/voice/call/MOCK_CALL_000042")

        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_blank_sid(self, client: TestClient) -> None:
        response = client.get("/api/voice/message/%20")

        assert response.status_code == 400
        assert response.json()["message"] == "Valid Message SID is required"


class TestRateLimit:
    def test_limit_per_caller(
        self,
        client: TestClient,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("VOICE_RATE_LIMIT", "2")
        payload = {"toNumber": "+14155551234", "message": "hi"}

        assert client.post("/api/voice/sms", json=payload).status_code == 200
        assert client.post("/api/voice/sms", json=payload).status_code == 200
        response = client.post("/api/voice/sms", json=payload)

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Rate limit exceeded. Maximum 2 calls per hour."
        assert body["retryAfter"] > 0
        assert response.headers["Retry-After"] == str(body["retryAfter"])

    def test_authenticated_users_have_own_budget(
        self,
        client: TestClient,
        monkeypatch: pytest.MonkeyPatch,
        token_factory: Callable[..., str],
    ) -> None:
        monkeypatch.setenv("VOICE_RATE_LIMIT", "1")
        payload = {"toNumber": "+14155551234", "message": "hi"}
        alice = {"Authorization": f"Bearer {token_factory(uid='alice')}"}
        bob = {"Authorization": f"Bearer {token_factory(uid='bob')}"}

        assert client.post("/api/voice/sms", json=payload, headers=alice).status_code == 200
        assert client.post("/api/voice/sms", json=payload, headers=bob).status_code == 200
        assert client.post("/api/voice/sms", json=payload, headers=alice).status_code == 429

    def test_unverifiable_token_is_served_anonymously(
        self,
        client: TestClient,
        mock_provider: MockTelephonyAdapter,
    ) -> None:
        response = client.post(
            "/api/voice/sms",
            json={"toNumber": "+14155551234", "message": "hi"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 200
        assert len(mock_provider.messages) == 1

    def test_unverifiable_token_shares_anonymous_budget(
        self,
        client: TestClient,
        monkeypatch: pytest.MonkeyPatch,
        token_factory: Callable[..., str],
    ) -> None:
        monkeypatch.setenv("VOICE_RATE_LIMIT", "1")
        payload = {"toNumber": "+14155551234", "message": "hi"}
        other_secret = "a-different-signing-secret-of-32-bytes"
        forged = {"Authorization": f"Bearer {token_factory(uid='alice', secret=other_secret)}"}

        assert client.post("/api/voice/sms", json=payload).status_code == 200
        assert client.post("/api/voice/sms", json=payload, headers=forged).status_code == 429

    def test_rate_limit_does_not_touch_campaign_budget(
        self,
        client: TestClient,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("VOICE_RATE_LIMIT", "1")
        client.post("/api/voice/sms", json={"toNumber": "+14155551234", "message": "hi"})

        response = client.post(
            "/api/campaigns/estimate-cost", json={"recipients": 1, "contentType": "text"}
        )

        assert response.status_code == 200


class TestVoiceAuth:
    @pytest.fixture(autouse=True)
    def require_auth(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOICE_AUTH_REQUIRED", "true")

    def test_missing_token(self, client: TestClient) -> None:
        response = client.post("/api/voice/sms", json={"toNumber": "+14155551234", "message": "hi"})

        assert response.status_code == 401
        assert response.json()["message"] == "No authorization token provided"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.post(
            "/api/voice/sms",
            json={"toNumber": "+14155551234", "message": "hi"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_plain_user_is_forbidden(self, client: TestClient, user_token: str) -> None:
        response = client.post(
            "/api/voice/sms",
            json={"toNumber": "+14155551234", "message": "hi"},
            headers={"Authorization": f"Bearer {user_token}"},
        )

        assert response.status_code == 403
        assert response.json()["message"] == (
            "This action requires one of the following roles: moderator, admin"
        )

    def test_moderator_is_allowed(self, client: TestClient, moderator_token: str) -> None:
        response = client.post(
            "/api/voice/sms",
            json={"toNumber": "+14155551234", "message": "hi"},
            headers={"Authorization": f"Bearer {moderator_token}"},
        )

        assert response.status_code == 200
