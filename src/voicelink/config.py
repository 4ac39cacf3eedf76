"""
VoiceLink settings, read from the process environment and an optional .env file.
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Backend-wide settings; telephony credentials live in TelephonyConfig."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    app_name: str = "voicelink"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Public URL Twilio uses to reach this service (TwiML callbacks, uploads)
    public_base_url: str = Field(
        default="",
        description="Externally reachable base URL, e.g. https://voicelink.example.org",
    )

    # Auth
    jwt_secret_key: str = Field(
        default="change-me-in-production-use-secrets-manager",
        description="Secret key used to verify moderator session JWTs",
    )
    jwt_algorithm: str = Field(default="HS256")
    voice_auth_required: bool = Field(
        default=False,
        description="Require a moderator/admin bearer token on voice and campaign routes.",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:8080",
        description="Comma-separated list of allowed CORS origins",
    )

    # Rate limits (per user or client IP)
    voice_rate_limit: int = Field(default=50, ge=1)
    campaign_rate_limit: int = Field(default=20, ge=1)
    rate_limit_window_seconds: int = Field(default=3600, ge=1)

    # Campaigns
    campaign_send_delay_seconds: float = Field(
        default=0.1,
        ge=0,
        description="Pause between consecutive sends within one campaign.",
    )
    uploads_dir: str = Field(default="uploads")
    max_voice_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    # IVR
    ivr_voice: str = Field(default="alice", description="Twilio <Say> voice")
    validate_twilio_signature: bool = Field(
        default=False,
        description="Check X-Twilio-Signature on IVR callbacks.",
    )

    @field_validator("public_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def _get_settings_cached() -> Settings:
    return Settings()


def get_settings() -> Settings:
    # Tests monkeypatch the environment, so never hand them a frozen instance.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return Settings()
    return _get_settings_cached()
