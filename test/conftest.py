"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Generator
from pathlib import Path

import jwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from voicelink.campaigns.service import get_campaign_store
from voicelink.main import create_app
from voicelink.telephony.factory import close_telephony_provider, get_telephony_provider
from voicelink.telephony.mock_adapter import MockTelephonyAdapter
from voicelink.voice.guards import reset_rate_limiters

TEST_JWT_SECRET = "test-secret-key-for-voicelink-backend-tests"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Deterministic settings and clean in-process state for every test."""
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("JWT_SECRET_KEY", TEST_JWT_SECRET)
    monkeypatch.setenv("CAMPAIGN_SEND_DELAY_SECONDS", "0")
    monkeypatch.setenv("PUBLIC_BASE_URL", "")
    monkeypatch.setenv("VOICE_AUTH_REQUIRED", "false")
    monkeypatch.setenv("VALIDATE_TWILIO_SIGNATURE", "false")
    monkeypatch.setenv("TELEPHONY_PROVIDER_TYPE", "mock")
    monkeypatch.setenv("TELEPHONY_WEBHOOK_BASE_URL", "https://voicelink.example.org")

    reset_rate_limiters()
    get_campaign_store().clear()
    close_telephony_provider()
    yield
    reset_rate_limiters()
    get_campaign_store().clear()
    close_telephony_provider()


@pytest.fixture
def mock_provider() -> MockTelephonyAdapter:
    return MockTelephonyAdapter(from_number="+15005550006")


@pytest.fixture
def app(mock_provider: MockTelephonyAdapter) -> Generator[FastAPI, None, None]:
    application = create_app()
    application.dependency_overrides[get_telephony_provider] = lambda: mock_provider
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def make_token(
    uid: str = "user-1",
    role: str = "moderator",
    email: str = "mod@example.com",
    expires_in: int = 3600,
    secret: str = TEST_JWT_SECRET,
) -> str:
    now = int(time.time())
    return jwt.encode(
        {"uid": uid, "email": email, "role": role, "iat": now, "exp": now + expires_in},
        secret,
        algorithm="HS256",
    )


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token


@pytest.fixture
def moderator_token() -> str:
    return make_token(role="moderator")


@pytest.fixture
def user_token() -> str:
    return make_token(uid="user-2", role="user", email="user@example.com")
